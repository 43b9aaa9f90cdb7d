import pytest

from cure8.core.collections import (
    DEFAULT_COLLECTION_NAME,
    MAX_DEPTH,
    CollectionStore,
)
from cure8.core.errors import CollectionNotFound, DepthExceeded
from cure8.core.types import RemoveMode


def _flatten(nodes):
    for node in nodes:
        yield node
        yield from _flatten(node.children)


def _ancestors(store, collection):
    count = 0
    current = collection.parent_id
    while current is not None:
        count += 1
        current = store.get(current).parent_id
    return count


def test_create_assigns_slug_and_defaults(clock):
    store = CollectionStore(clock=clock)
    work = store.create("Work")

    assert work.slug == "work"
    assert work.parent_id is None
    assert work.is_expanded is True
    assert work.created_at == work.updated_at
    assert store.list() == [work]


def test_sibling_collision_gets_suffix():
    store = CollectionStore()
    first = store.create("Work")
    second = store.create("Work")

    assert first.slug == "work"
    assert second.slug == "work-2"
    assert first.id != second.id


def test_same_name_under_different_parents_keeps_plain_slug():
    store = CollectionStore()
    work = store.create("Work")
    home = store.create("Home")
    nested_a = store.create("Notes", work.id)
    nested_b = store.create("Notes", home.id)

    assert nested_a.slug == nested_b.slug == "notes"


def test_blank_name_falls_back_to_default_label():
    store = CollectionStore()
    collection = store.create("   ")

    assert collection.name == DEFAULT_COLLECTION_NAME
    assert collection.slug == "untitled-collection"


def test_create_under_missing_parent_fails():
    store = CollectionStore()
    with pytest.raises(CollectionNotFound):
        store.create("Orphan", "missing")
    assert store.list() == []


def test_depth_limit_allows_four_levels_and_rejects_the_fifth():
    store = CollectionStore()
    projects = store.create("Projects")
    alpha = store.create("Alpha", projects.id)
    beta = store.create("Beta", alpha.id)
    gamma = store.create("Gamma", beta.id)

    assert store.depth(gamma.id) == MAX_DEPTH - 1
    with pytest.raises(DepthExceeded):
        store.create("Delta", gamma.id)
    assert len(store) == 4


def test_tree_reproduces_parent_structure_and_depths():
    store = CollectionStore()
    a = store.create("A")
    b = store.create("B")
    a1 = store.create("A1", a.id)
    a2 = store.create("A2", a.id)
    a1x = store.create("A1x", a1.id)
    b1 = store.create("B1", b.id)

    tree = store.tree()

    assert [node.collection.id for node in tree] == [a.id, b.id]
    assert [node.collection.id for node in tree[0].children] == [a1.id, a2.id]
    assert [node.collection.id for node in tree[0].children[0].children] == [a1x.id]
    assert [node.collection.id for node in tree[1].children] == [b1.id]
    for node in _flatten(tree):
        assert node.depth == _ancestors(store, node.collection)
        for child in node.children:
            assert child.collection.parent_id == node.collection.id
    assert len(list(_flatten(tree))) == len(store)


def test_rename_recomputes_slug_and_reports_previous(clock):
    store = CollectionStore(clock=clock)
    work = store.create("Work")

    result = store.rename(work.id, "Office")

    assert result.previous_slug == "work"
    assert result.collection.slug == "office"
    assert result.collection.name == "Office"
    assert result.slug_changed
    assert result.collection.updated_at > work.updated_at
    assert store.get(work.id) == result.collection


def test_rename_excludes_itself_from_sibling_set(clock):
    store = CollectionStore(clock=clock)
    work = store.create("Work")

    result = store.rename(work.id, "WORK ")

    assert result.collection.slug == "work"
    assert not result.slug_changed
    assert result.collection.updated_at > work.updated_at


def test_rename_into_sibling_collision_gets_suffix():
    store = CollectionStore()
    store.create("Work")
    home = store.create("Home")

    result = store.rename(home.id, "Work")

    assert result.collection.slug == "work-2"
    slugs = [c.slug for c in store.children_of(None)]
    assert len(slugs) == len(set(slugs))


def test_rename_blank_name_falls_back():
    store = CollectionStore()
    work = store.create("Work")

    result = store.rename(work.id, "")

    assert result.collection.name == DEFAULT_COLLECTION_NAME


def test_rename_and_remove_unknown_id_raise():
    store = CollectionStore()
    with pytest.raises(CollectionNotFound):
        store.rename("nope", "Name")
    with pytest.raises(CollectionNotFound):
        store.remove("nope")


def test_remove_rejects_unknown_mode():
    store = CollectionStore()
    work = store.create("Work")
    with pytest.raises(ValueError):
        store.remove(work.id, "shred")
    assert store.get(work.id) == work


def test_remove_reparent_moves_children_to_grandparent():
    store = CollectionStore()
    root = store.create("Root")
    archive = store.create("Archive", root.id)
    year = store.create("2023", archive.id)
    deep = store.create("Q1", year.id)

    result = store.remove(archive.id, RemoveMode.REPARENT)

    assert result.removed == [archive]
    assert [c.id for c in result.reparented] == [year.id]
    moved = store.get(year.id)
    assert moved.parent_id == root.id
    assert moved.slug == year.slug
    assert store.get(deep.id).parent_id == year.id
    assert store.get(archive.id) is None
    assert store.depth(deep.id) == 2


def test_remove_reparent_at_root_moves_children_to_root():
    store = CollectionStore()
    archive = store.create("Archive")
    year = store.create("2023", archive.id)

    result = store.remove(archive.id)

    assert result.reparented[0].parent_id is None
    assert [node.collection.id for node in store.tree()] == [year.id]


def test_remove_delete_subtree_removes_all_descendants():
    store = CollectionStore()
    keep = store.create("Keep")
    old = store.create("Old")
    stale = store.create("Stale", old.id)
    older = store.create("Older", stale.id)
    sibling = store.create("Sibling", old.id)

    expected = set(store.subtree_ids(old.id))
    result = store.remove(old.id, "delete-subtree")

    assert {c.id for c in result.removed} == {old.id, stale.id, older.id, sibling.id}
    assert len(result.removed) == len(expected)
    assert result.removed[0].id == old.id
    assert result.reparented == []
    assert store.list() == [keep]


def test_set_expanded_same_value_does_not_touch_timestamp(clock):
    store = CollectionStore(clock=clock)
    work = store.create("Work")

    unchanged = store.set_expanded(work.id, True)
    assert unchanged.updated_at == work.updated_at

    collapsed = store.set_expanded(work.id, False)
    assert collapsed.is_expanded is False
    assert collapsed.updated_at > work.updated_at


def test_toggle_expanded_flips_flag_and_ignores_unknown_ids():
    store = CollectionStore()
    work = store.create("Work")

    assert store.toggle_expanded(work.id).is_expanded is False
    assert store.toggle_expanded(work.id).is_expanded is True
    assert store.toggle_expanded("missing") is None
    assert store.set_expanded("missing", False) is None


def test_load_replaces_contents_in_given_order():
    source = CollectionStore()
    a = source.create("A")
    b = source.create("B", a.id)

    store = CollectionStore()
    store.create("Stray")
    store.load([a, b])

    assert store.list() == [a, b]
    assert store.tree()[0].children[0].collection == b
