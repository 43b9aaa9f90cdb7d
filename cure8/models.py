from datetime import timezone

from cure8.core.types import Card, CardStatus, Collection, utcnow
from cure8.extensions import db


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CollectionRecord(db.Model):
    __tablename__ = "collections"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False)
    parent_id = db.Column(db.String(64), nullable=True, index=True)
    is_expanded = db.Column(db.Boolean, nullable=False, default=True)
    position = db.Column(db.Integer, nullable=False, default=0, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_collection(self) -> Collection:
        return Collection(
            id=self.id,
            name=self.name,
            slug=self.slug,
            parent_id=self.parent_id,
            is_expanded=bool(self.is_expanded),
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )

    def apply(self, collection: Collection) -> None:
        self.name = collection.name
        self.slug = collection.slug
        self.parent_id = collection.parent_id
        self.is_expanded = collection.is_expanded
        self.created_at = collection.created_at
        self.updated_at = collection.updated_at


class CardRecord(db.Model):
    __tablename__ = "cards"

    id = db.Column(db.String(64), primary_key=True)
    url = db.Column(db.Text, nullable=False)
    title = db.Column(db.String(512), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=CardStatus.READY.value)
    domain = db.Column(db.String(255), nullable=True)
    image = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    metadata_json = db.Column("metadata", db.JSON, nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    collections = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_card(self) -> Card:
        return Card(
            id=self.id,
            url=self.url,
            title=self.title,
            notes=self.notes,
            status=CardStatus(self.status or CardStatus.READY.value),
            domain=self.domain,
            image=self.image,
            description=self.description,
            metadata=self.metadata_json,
            tags=tuple(self.tags or ()),
            collections=tuple(self.collections or ()),
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )

    def apply(self, card: Card) -> None:
        self.url = card.url
        self.title = card.title
        self.notes = card.notes
        self.status = card.status.value
        self.domain = card.domain
        self.image = card.image
        self.description = card.description
        self.metadata_json = card.metadata
        self.tags = list(card.tags)
        self.collections = list(card.collections)
        self.created_at = card.created_at
        self.updated_at = card.updated_at
