from datetime import datetime, timezone

import pytest

from cure8.core.errors import CollectionNotFound, DepthExceeded
from cure8.core.types import Card
from cure8.library import build_library


def _card(card_id: str, tags=()):
    stamp = datetime(2023, 1, 1, tzinfo=timezone.utc)
    return Card(
        id=card_id,
        url=f"https://{card_id}.example",
        title=card_id,
        created_at=stamp,
        updated_at=stamp,
        tags=tuple(tags),
    )


@pytest.fixture
def library():
    return build_library()


def _all_ids(nodes):
    ids = []
    for node in nodes:
        ids.append(node.collection.id)
        ids.extend(_all_ids(node.children))
    return ids


def test_scenario_a_sibling_collision(library):
    first = library.orchestrator.create("Work")
    second = library.orchestrator.create("Work")

    assert first.slug == "work"
    assert second.slug == "work-2"


def test_scenario_b_depth_limit(library):
    orchestrator = library.orchestrator
    projects = orchestrator.create("Projects")
    alpha = orchestrator.create("Alpha", projects.id)
    beta = orchestrator.create("Beta", alpha.id)
    gamma = orchestrator.create("Gamma", beta.id)

    with pytest.raises(DepthExceeded):
        orchestrator.create("Delta", gamma.id)
    assert [c.name for c in orchestrator.list()] == [
        "Projects",
        "Alpha",
        "Beta",
        "Gamma",
    ]


def test_scenario_c_rename_propagates_to_cards(library):
    work = library.orchestrator.create("Work")
    library.cards.set_cards([_card("c1"), _card("c2"), _card("c3", ["#home"])])
    library.cards.bulk_assign_tag(["c1", "c2"], "#work")

    outcome = library.orchestrator.rename(work.id, "Office")

    assert outcome.previous_slug == "work"
    assert outcome.collection.slug == "office"
    assert {card.id for card in outcome.retagged} == {"c1", "c2"}
    for card_id in ("c1", "c2"):
        card = library.cards.get(card_id)
        assert "#office" in card.tags
        assert "#work" not in card.tags
        assert card.collections == ("#office",)
    assert library.cards.get("c3").tags == ("#home",)


def test_rename_with_same_slug_leaves_cards_untouched(library):
    work = library.orchestrator.create("Work")
    library.cards.set_cards([_card("c1", ["#work"])])
    before = library.cards.get("c1")

    outcome = library.orchestrator.rename(work.id, "  WORK  ")

    assert outcome.retagged == []
    assert outcome.collection.name == "WORK"
    assert outcome.collection.updated_at >= work.updated_at
    assert library.cards.get("c1") == before


def test_rename_unknown_collection_propagates(library):
    library.cards.set_cards([_card("c1", ["#work"])])
    with pytest.raises(CollectionNotFound):
        library.orchestrator.rename("missing", "Office")
    assert library.cards.get("c1").tags == ("#work",)


def test_scenario_d_reparent_delete(library):
    orchestrator = library.orchestrator
    archive = orchestrator.create("Archive")
    year = orchestrator.create("2023", archive.id)
    library.cards.set_cards(
        [_card("c1", ["#archive", "misc"]), _card("c2", ["#2023"])]
    )

    outcome = orchestrator.remove(archive.id, "reparent")

    assert [c.id for c in outcome.removed] == [archive.id]
    assert [c.id for c in outcome.reparented] == [year.id]
    assert library.collections.get(year.id).parent_id is None
    assert archive.id not in _all_ids(orchestrator.tree())
    assert library.cards.get("c1").tags == ("misc",)
    assert library.cards.get("c2").tags == ("#2023",)
    assert [card.id for card in outcome.untagged] == ["c1"]


def test_scenario_e_delete_subtree(library):
    orchestrator = library.orchestrator
    old = orchestrator.create("Old")
    stale = orchestrator.create("Stale", old.id)
    keep = orchestrator.create("Keep")
    library.cards.set_cards(
        [
            _card("c1", ["#old", "#stale"]),
            _card("c2", ["#stale", "#keep"]),
            _card("c3", ["#keep"]),
        ]
    )

    outcome = orchestrator.remove(old.id, "delete-subtree")

    assert {c.id for c in outcome.removed} == {old.id, stale.id}
    assert [c.id for c in orchestrator.list()] == [keep.id]
    assert library.cards.get("c1").tags == ()
    assert library.cards.get("c1").collections == ()
    assert library.cards.get("c2").tags == ("#keep",)
    assert library.cards.get("c3").tags == ("#keep",)
    assert {card.id for card in outcome.untagged} == {"c1", "c2"}


def test_remove_dedupes_collection_tags(library, monkeypatch):
    orchestrator = library.orchestrator
    parent = orchestrator.create("Notes")
    orchestrator.create("Notes", parent.id)
    calls = []
    real_remove = library.cards.remove_tag_from_all

    def spy(tag):
        calls.append(tag.token)
        return real_remove(tag)

    monkeypatch.setattr(library.cards, "remove_tag_from_all", spy)

    orchestrator.remove(parent.id, "delete-subtree")

    assert calls == ["#notes"]


def test_remove_runs_store_before_card_index(library, monkeypatch):
    orchestrator = library.orchestrator
    work = orchestrator.create("Work")
    seen = []

    def spy(tag):
        seen.append(library.collections.get(work.id))
        return []

    monkeypatch.setattr(library.cards, "remove_tag_from_all", spy)

    orchestrator.remove(work.id)

    assert seen == [None]


def test_expand_calls_delegate_without_touching_cards(library):
    work = library.orchestrator.create("Work")
    library.cards.set_cards([_card("c1", ["#work"])])
    before = library.cards.list()

    assert library.orchestrator.toggle_expanded(work.id).is_expanded is False
    assert library.orchestrator.set_expanded(work.id, True).is_expanded is True
    assert library.orchestrator.toggle_expanded("missing") is None
    assert library.cards.list() == before
