from __future__ import annotations

from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from cure8.api import api_bp
from cure8.core.errors import CollectionNotFound, DepthExceeded, InvalidTag
from cure8.core.tags import normalize_tags
from cure8.core.types import Card, CardStatus, RemoveMode, new_id, utcnow
from cure8.library import get_library
from cure8.services.common import (
    domain_from_url,
    is_valid_url,
    parse_client_time,
    to_bool,
)
from cure8.services.persistence import (
    delete_cards,
    delete_collections,
    save_cards,
    save_collections,
    write_through,
)
from cure8.services.sanitize import sanitize_optional, sanitize_text

CARD_TEXT_FIELDS = ("title", "notes", "domain", "description")


@api_bp.errorhandler(CollectionNotFound)
def handle_collection_not_found(error):
    return jsonify({"error": str(error)}), 404


@api_bp.errorhandler(DepthExceeded)
def handle_depth_exceeded(error):
    return jsonify({"error": str(error), "max_depth": error.max_depth}), 422


@api_bp.errorhandler(InvalidTag)
def handle_invalid_tag(error):
    return jsonify({"error": str(error)}), 400


@api_bp.errorhandler(SQLAlchemyError)
def handle_database_error(error):
    current_app.logger.error("Database write failed: %s", error)
    return jsonify({"error": "unable to save changes"}), 500


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _parse_status(value):
    if value is None:
        return None
    try:
        return CardStatus(str(value).strip().upper())
    except ValueError:
        return None


def _string_list(value) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


def _get_card_or_404(card_id: str):
    card = get_library().cards.get(card_id)
    if card is None:
        return None, (jsonify({"error": "card not found"}), 404)
    return card, None


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "cure8"})


@api_bp.route("/collections", methods=["GET"])
def collections_list():
    library = get_library()
    return jsonify({"items": [c.as_dict() for c in library.orchestrator.list()]})


@api_bp.route("/collections/tree", methods=["GET"])
def collections_tree():
    library = get_library()
    return jsonify({"items": [node.as_dict() for node in library.orchestrator.tree()]})


@api_bp.route("/collections", methods=["POST"])
def collections_create():
    payload = _payload()
    name = payload.get("name")
    if name is not None and not isinstance(name, str):
        return jsonify({"error": "name must be a string"}), 400
    parent_id = payload.get("parent_id") or None
    if parent_id is not None and not isinstance(parent_id, str):
        return jsonify({"error": "parent_id must be a string"}), 400

    library = get_library()
    with write_through(library):
        collection = library.orchestrator.create(sanitize_text(name), parent_id)
        save_collections([collection])
    current_app.logger.info(
        "Created collection %s (%s)", collection.id, collection.slug
    )
    return jsonify(collection.as_dict()), 201


@api_bp.route("/collections/<collection_id>", methods=["PATCH"])
def collections_update(collection_id: str):
    payload = _payload()
    if "name" not in payload and "is_expanded" not in payload:
        return jsonify({"error": "nothing to update"}), 400
    if "name" in payload and not isinstance(payload.get("name"), str):
        return jsonify({"error": "name must be a string"}), 400

    library = get_library()
    with write_through(library):
        if collection_id not in library.collections:
            raise CollectionNotFound(collection_id)
        response = {}
        changed_cards: list[Card] = []
        if "name" in payload:
            outcome = library.orchestrator.rename(
                collection_id, sanitize_text(payload.get("name"))
            )
            changed_cards = outcome.retagged
            response["previous_slug"] = outcome.previous_slug
            response["retagged_card_ids"] = [card.id for card in outcome.retagged]
        if "is_expanded" in payload:
            library.orchestrator.set_expanded(
                collection_id, to_bool(payload.get("is_expanded"))
            )
        collection = library.collections.get(collection_id)
        save_collections([collection])
        save_cards(changed_cards)

    response["collection"] = collection.as_dict()
    if changed_cards:
        current_app.logger.info(
            "Renamed collection %s to %s; retagged %d cards",
            collection_id,
            collection.slug,
            len(changed_cards),
        )
    return jsonify(response)


@api_bp.route("/collections/<collection_id>/toggle", methods=["POST"])
def collections_toggle(collection_id: str):
    library = get_library()
    with write_through(library):
        collection = library.orchestrator.toggle_expanded(collection_id)
        if collection is None:
            return jsonify({"error": "collection not found"}), 404
        save_collections([collection])
    return jsonify(collection.as_dict())


@api_bp.route("/collections/<collection_id>", methods=["DELETE"])
def collections_delete(collection_id: str):
    raw_mode = (request.args.get("mode") or _payload().get("mode") or "").strip()
    try:
        mode = RemoveMode(raw_mode.lower() or RemoveMode.REPARENT.value)
    except ValueError:
        return jsonify({"error": f"unknown delete mode: {raw_mode}"}), 400

    library = get_library()
    with write_through(library):
        outcome = library.orchestrator.remove(collection_id, mode)
        delete_collections(outcome.removed)
        save_collections(outcome.reparented)
        save_cards(outcome.untagged)

    current_app.logger.info(
        "Deleted collection %s (%s): %d removed, %d reparented, %d cards untagged",
        collection_id,
        mode.value,
        len(outcome.removed),
        len(outcome.reparented),
        len(outcome.untagged),
    )
    return jsonify(
        {
            "status": "deleted",
            "removed": [c.as_dict() for c in outcome.removed],
            "reparented": [c.as_dict() for c in outcome.reparented],
            "untagged_card_ids": [card.id for card in outcome.untagged],
        }
    )


@api_bp.route("/cards", methods=["GET"])
def cards_list():
    items = get_library().cards.list()
    tag = (request.args.get("tag") or "").strip()
    if tag:
        items = [card for card in items if tag in card.tags]
    collection = (request.args.get("collection") or "").strip()
    if collection:
        token = collection if collection.startswith("#") else f"#{collection}"
        items = [card for card in items if token in card.collections]
    return jsonify({"items": [card.as_dict() for card in items]})


@api_bp.route("/cards", methods=["POST"])
def cards_create():
    payload = _payload()
    url = payload.get("url")
    url = url.strip() if isinstance(url, str) else ""
    if not url:
        return jsonify({"error": "url is required"}), 400
    if not is_valid_url(url):
        return jsonify({"error": "url is invalid"}), 400

    status = CardStatus.READY
    if payload.get("status") is not None:
        status = _parse_status(payload.get("status"))
        if status is None:
            return jsonify({"error": "status is invalid"}), 400

    library = get_library()
    card_id = payload.get("id") if isinstance(payload.get("id"), str) else None
    card_id = (card_id or "").strip() or new_id()
    if card_id in library.cards:
        return jsonify({"error": "card already exists"}), 409

    now = utcnow()
    created_at = parse_client_time(payload.get("created_at")) or now
    card = Card(
        id=card_id,
        url=url,
        title=sanitize_text(payload.get("title")) or url,
        notes=sanitize_optional(payload.get("notes")),
        status=status,
        domain=sanitize_optional(payload.get("domain")) or domain_from_url(url),
        image=payload.get("image") if isinstance(payload.get("image"), str) else None,
        description=sanitize_optional(payload.get("description")),
        metadata=payload.get("metadata"),
        tags=tuple(_string_list(payload.get("tags")) or ()),
        created_at=created_at,
        updated_at=now,
    )
    with write_through(library):
        card = library.cards.upsert(card)
        save_cards([card])
    return jsonify(card.as_dict()), 201


@api_bp.route("/cards", methods=["DELETE"])
def cards_clear():
    library = get_library()
    with write_through(library):
        removed = library.cards.remove_cards([card.id for card in library.cards.list()])
        delete_cards(removed)
    current_app.logger.info("Cleared %d cards", len(removed))
    return jsonify({"status": "cleared", "count": len(removed)})


@api_bp.route("/cards/<card_id>", methods=["GET"])
def cards_get(card_id: str):
    card, error = _get_card_or_404(card_id)
    if error:
        return error
    return jsonify(card.as_dict())


@api_bp.route("/cards/<card_id>", methods=["PATCH"])
def cards_update(card_id: str):
    payload = _payload()
    if not payload:
        return jsonify({"error": "No updatable fields provided"}), 400

    fields = {}
    for name in CARD_TEXT_FIELDS:
        if name in payload:
            fields[name] = sanitize_optional(payload.get(name))
    if "title" in fields and not fields["title"]:
        return jsonify({"error": "title cannot be empty"}), 400
    if "status" in payload:
        status = _parse_status(payload.get("status"))
        if status is None:
            return jsonify({"error": "status is invalid"}), 400
        fields["status"] = status
    if "url" in payload:
        url = payload.get("url")
        if not isinstance(url, str) or not is_valid_url(url):
            return jsonify({"error": "url is invalid"}), 400
        fields["url"] = url.strip()
    if "image" in payload:
        image = payload.get("image")
        fields["image"] = image if isinstance(image, str) else None
    if "metadata" in payload:
        fields["metadata"] = payload.get("metadata")

    tags = None
    if "tags" in payload or "collections" in payload:
        tags = normalize_tags(
            (_string_list(payload.get("tags")) or [])
            + (_string_list(payload.get("collections")) or [])
        )

    library = get_library()
    with write_through(library):
        card, error = _get_card_or_404(card_id)
        if error:
            return error
        if fields:
            card = library.cards.update(card_id, **fields)
        if tags is not None:
            card = library.cards.set_tags(card_id, tags)
        save_cards([card])
    return jsonify(card.as_dict())


@api_bp.route("/cards/<card_id>", methods=["DELETE"])
def cards_delete(card_id: str):
    library = get_library()
    with write_through(library):
        card = library.cards.remove_card(card_id)
        if card is None:
            return jsonify({"error": "card not found"}), 404
        delete_cards([card])
    return jsonify({"status": "deleted"})


def _bulk_tag_request():
    payload = _payload()
    card_ids = _string_list(payload.get("card_ids"))
    tag = payload.get("tag")
    if not card_ids:
        return None, None, (jsonify({"error": "card_ids is required"}), 400)
    if not isinstance(tag, str) or not tag.strip():
        return None, None, (jsonify({"error": "tag is required"}), 400)
    return card_ids, tag, None


@api_bp.route("/cards/tags", methods=["POST"])
def cards_bulk_assign_tag():
    card_ids, tag, error = _bulk_tag_request()
    if error:
        return error
    library = get_library()
    with write_through(library):
        changed = library.cards.bulk_assign_tag(card_ids, tag)
        save_cards(changed)
    return jsonify({"items": [card.as_dict() for card in changed]})


@api_bp.route("/cards/tags", methods=["DELETE"])
def cards_bulk_remove_tag():
    card_ids, tag, error = _bulk_tag_request()
    if error:
        return error
    library = get_library()
    with write_through(library):
        changed = library.cards.bulk_remove_tag(card_ids, tag)
        save_cards(changed)
    return jsonify({"items": [card.as_dict() for card in changed]})


@api_bp.route("/tags", methods=["GET"])
def tags_list():
    return jsonify({"items": get_library().cards.all_tags()})
