import pytest
from sqlalchemy import event

from catalog.exceptions import ConflictError, InvalidInputError, NotFoundError
from catalog.models import Category
from catalog.schemas import CategoryCreate, CategoryUpdate
from catalog.seed import seed_categories
from catalog.services import CategoryService, slugify


@pytest.fixture
def service(db):
    return CategoryService(db)


def _orders(db, *categories):
    for c in categories:
        db.refresh(c)
    return [c.sort_order for c in categories]


def _roots(service):
    return [node.name for node in service.get_tree()]


# create

def test_create_applies_defaults(service):
    category = service.create_category(CategoryCreate(name="Shoes", slug="shoes"))
    assert category.id is not None
    assert category.sort_order == 0
    assert category.is_visible is True
    assert category.parent_id is None
    assert category.created_at is not None
    assert category.updated_at is not None


def test_create_derives_slug_from_name(service):
    category = service.create_category(CategoryCreate(name="Summer  Dresses!"))
    assert category.slug == "summer-dresses"


def test_create_rejects_name_without_usable_slug(service):
    with pytest.raises(InvalidInputError):
        service.create_category(CategoryCreate(name="男装"))


def test_create_duplicate_slug_is_conflict(service, db):
    service.create_category(CategoryCreate(name="Shoes", slug="shoes"))
    with pytest.raises(ConflictError):
        service.create_category(CategoryCreate(name="Other shoes", slug="shoes"))
    assert db.query(Category).count() == 1


def test_create_with_missing_parent(service):
    with pytest.raises(NotFoundError):
        service.create_category(CategoryCreate(name="Orphan", slug="orphan", parent_id=42))


def test_slugify():
    assert slugify("  Men's T Shirts ") == "mens-t-shirts"


# update

def test_update_is_partial(service, sample_tree):
    a, _, _ = sample_tree
    updated = service.update_category(a.id, CategoryUpdate(description="Top level"))
    assert updated.description == "Top level"
    assert updated.name == "A"
    assert updated.sort_order == 1


def test_update_rename_keeps_slug(service, sample_tree):
    a, _, _ = sample_tree
    updated = service.update_category(a.id, CategoryUpdate(name="Renamed"))
    assert updated.slug == "a"


def test_update_duplicate_slug_is_conflict(service, sample_tree):
    a, b, _ = sample_tree
    with pytest.raises(ConflictError):
        service.update_category(a.id, CategoryUpdate(slug=b.slug))


def test_update_same_slug_is_allowed(service, sample_tree):
    a, _, _ = sample_tree
    assert service.update_category(a.id, CategoryUpdate(slug="a")).slug == "a"


def test_update_rejects_self_parent(service, sample_tree):
    a, _, _ = sample_tree
    with pytest.raises(InvalidInputError):
        service.update_category(a.id, CategoryUpdate(parent_id=a.id))


def test_update_rejects_moving_under_descendant(service, make_category, sample_tree):
    a, _, c = sample_tree
    grandchild = make_category("D", parent_id=c.id)
    with pytest.raises(InvalidInputError):
        service.update_category(a.id, CategoryUpdate(parent_id=grandchild.id))
    with pytest.raises(InvalidInputError):
        service.update_category(a.id, CategoryUpdate(parent_id=c.id))


def test_update_reparent_and_back_to_root(service, sample_tree):
    _, b, c = sample_tree
    assert service.update_category(c.id, CategoryUpdate(parent_id=b.id)).parent_id == b.id
    assert service.update_category(c.id, CategoryUpdate(parent_id=None)).parent_id is None


def test_update_missing_parent(service, sample_tree):
    a, _, _ = sample_tree
    with pytest.raises(NotFoundError):
        service.update_category(a.id, CategoryUpdate(parent_id=999))


def test_update_ignores_null_for_required_fields(service, sample_tree):
    a, _, _ = sample_tree
    updated = service.update_category(a.id, CategoryUpdate(name=None, sort_order=None))
    assert updated.name == "A"
    assert updated.sort_order == 1


# delete

def test_delete_with_children_is_conflict(service, db, sample_tree):
    a, _, c = sample_tree
    with pytest.raises(ConflictError, match="children"):
        service.delete_category(a.id)
    assert db.query(Category).count() == 3

    assert service.delete_category(c.id) is True
    assert service.delete_category(a.id) is True
    assert db.query(Category).count() == 1


def test_delete_missing(service):
    with pytest.raises(NotFoundError):
        service.delete_category(7)


# reads

def test_get_and_get_by_slug(service, sample_tree):
    a, _, _ = sample_tree
    assert service.get_category(a.id).slug == "a"
    assert service.get_by_slug("a").id == a.id
    with pytest.raises(NotFoundError):
        service.get_by_slug("nope")


def test_get_children_in_sibling_order(service, make_category, sample_tree):
    a, _, c = sample_tree
    first = make_category("E", parent_id=a.id, sort_order=0)
    assert [ch.id for ch in service.get_children(a.id)] == [first.id, c.id]
    with pytest.raises(NotFoundError):
        service.get_children(999)


def test_list_filters_and_pagination(service, make_category, sample_tree):
    a, b, c = sample_tree
    make_category("Hidden", sort_order=5, is_visible=False)

    items, total = service.list_categories()
    assert total == 4
    assert [i.name for i in items] == ["A", "C", "B", "Hidden"]

    items, total = service.list_categories(parent_id=a.id)
    assert [i.id for i in items] == [c.id]

    items, total = service.list_categories(is_visible=False)
    assert [i.name for i in items] == ["Hidden"]

    items, total = service.list_categories(search="hid")
    assert total == 1

    items, total = service.list_categories(sort_by="name", order="desc", page=1, page_size=2)
    assert total == 4
    assert [i.name for i in items] == ["Hidden", "C"]

    items, _ = service.list_categories(sort_by="bogus", page=2, page_size=3)
    assert [i.name for i in items] == ["Hidden"]


# visibility and sort order

def test_toggle_visibility_hides_subtree(service, sample_tree):
    a, _, _ = sample_tree
    assert service.toggle_visibility(a.id).is_visible is False
    assert _roots(service) == ["B"]
    assert [n.name for n in service.get_tree(include_hidden=True)] == ["A", "B"]

    assert service.toggle_visibility(a.id).is_visible is True
    assert service.get_tree()[0].children[0].name == "C"


def test_set_sort_order_does_not_renumber_siblings(service, db, sample_tree):
    a, b, _ = sample_tree
    service.set_sort_order(a.id, 2)
    assert _orders(db, a, b) == [2, 2]
    assert _roots(service) == ["A", "B"]

    service.set_sort_order(a.id, 10)
    assert _roots(service) == ["B", "A"]


def test_set_sort_order_rejects_negative(service, sample_tree):
    a, _, _ = sample_tree
    with pytest.raises(InvalidInputError):
        service.set_sort_order(a.id, -1)


# move up / down

def test_move_up_first_sibling_is_noop(service, db, sample_tree):
    a, b, c = sample_tree
    assert service.move_up(a.id) is False
    assert _orders(db, a, b, c) == [1, 2, 1]


def test_move_down_last_sibling_is_noop(service, db, sample_tree):
    a, b, c = sample_tree
    assert service.move_down(b.id) is False
    assert service.move_down(c.id) is False
    assert _orders(db, a, b, c) == [1, 2, 1]


def test_move_down_example(service, db, sample_tree):
    a, b, c = sample_tree
    assert service.move_down(a.id) is True
    assert _orders(db, a, b) == [2, 1]
    forest = service.get_tree()
    assert [n.name for n in forest] == ["B", "A"]
    assert [n.name for n in forest[1].children] == ["C"]


def test_move_up_then_down_round_trips(service, db, make_category):
    first = make_category("First", sort_order=10)
    second = make_category("Second", sort_order=20)
    third = make_category("Third", sort_order=35)

    assert service.move_up(third.id) is True
    assert _orders(db, first, second, third) == [10, 35, 20]
    assert service.move_down(third.id) is True
    assert _orders(db, first, second, third) == [10, 20, 35]

    # With a tie the way back can pick the other tied sibling
    group = make_category("Group")
    tied = make_category("Tied", parent_id=group.id, sort_order=2)
    low = make_category("Low", parent_id=group.id, sort_order=1)
    mover = make_category("Mover", parent_id=group.id, sort_order=2)

    assert service.move_up(mover.id) is True
    assert service.move_down(mover.id) is True
    assert _orders(db, low, mover, tied) == [2, 2, 1]


def test_swap_locks_both_rows_in_id_order(service, db, sample_tree):
    a, b, _ = sample_tree
    statements = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        statements.append((statement, parameters))

    engine = db.get_bind()
    event.listen(engine, "before_cursor_execute", capture)
    try:
        assert service.move_up(b.id) is True
    finally:
        event.remove(engine, "before_cursor_execute", capture)

    pair_selects = [
        (sql, params) for sql, params in statements
        if "categories.id IN" in sql and "ORDER BY categories.id" in sql
    ]
    assert len(pair_selects) == 1
    assert set(pair_selects[0][1]) == {a.id, b.id}
    assert _orders(db, a, b) == [2, 1]


def test_swap_retries_when_neighbour_changes(service, db, monkeypatch, sample_tree):
    a, b, _ = sample_tree
    original = CategoryService._find_neighbor
    calls = []

    def flaky(self, category, upward):
        calls.append(category.id)
        if len(calls) == 2:
            return None
        return original(self, category, upward)

    monkeypatch.setattr(CategoryService, "_find_neighbor", flaky)
    assert service.move_down(a.id) is True
    assert len(calls) == 4
    assert _orders(db, a, b) == [2, 1]


def test_swap_gives_up_after_repeated_changes(service, db, monkeypatch, sample_tree):
    a, b, _ = sample_tree
    original = CategoryService._find_neighbor
    calls = []

    def always_stale(self, category, upward):
        calls.append(category.id)
        if len(calls) % 2 == 0:
            return None
        return original(self, category, upward)

    monkeypatch.setattr(CategoryService, "_find_neighbor", always_stale)
    with pytest.raises(ConflictError):
        service.move_down(a.id)
    assert _orders(db, a, b) == [1, 2]


def test_move_picks_closest_sibling_only(service, db, make_category):
    parent = make_category("Parent")
    other_parent = make_category("Other")
    x = make_category("X", parent_id=parent.id, sort_order=1)
    y = make_category("Y", parent_id=parent.id, sort_order=4)
    z = make_category("Z", parent_id=parent.id, sort_order=9)
    outsider = make_category("Outsider", parent_id=other_parent.id, sort_order=5)

    assert service.move_up(z.id) is True
    assert _orders(db, x, y, z, outsider) == [1, 9, 4, 5]


def test_move_missing_category(service):
    with pytest.raises(NotFoundError):
        service.move_up(404)


# seed

def test_seed_only_fills_empty_table(db):
    inserted = seed_categories(db)
    assert inserted == db.query(Category).count() == 5
    assert seed_categories(db) == 0
    tree = CategoryService(db).get_tree()
    assert [n.slug for n in tree] == ["menswear", "womenswear"]
    assert [n.slug for n in tree[0].children] == ["mens-t-shirts", "mens-shirts"]
