"""Integration tests for keeping items and their index entries in step."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from seconde.core.indexing.maintainer import IndexMaintainer
from seconde.core.indexing.projection import mirrored_fields_match
from seconde.database import DocumentStore, ItemRow, SearchIndexRow, row_to_index_entry, row_to_item
from seconde.utils.config import DatabaseConfig
from seconde.utils.exceptions import InvalidInputError, ItemNotFoundError, PermissionDeniedError


def load(document_store, item_id):
    """Return the item and its index entry as stored."""
    with document_store.session() as session:
        item = session.get(ItemRow, item_id)
        entry = session.get(SearchIndexRow, item_id)
        return (
            row_to_item(item) if item is not None else None,
            row_to_index_entry(entry) if entry is not None else None,
        )


class TestItemWrites:
    """Test create, update and delete propagation."""

    def test_create_writes_index_entry(self, maintainer, document_store, make_item, now):
        maintainer.apply_item_write(None, make_item("a", views=3))

        item, entry = load(document_store, "a")
        assert mirrored_fields_match(item, entry)
        assert entry.last_indexed == now
        assert "robe" in entry.keywords
        assert not entry.pending_prune

    def test_update_reprojects(self, maintainer, document_store, make_item):
        before = make_item("a")
        maintainer.apply_item_write(None, before)
        maintainer.apply_item_write(before, make_item("a", brand="Zara", is_sold=True))

        _, entry = load(document_store, "a")
        assert entry.brand == "Zara"
        assert entry.is_sold
        assert entry.pending_prune

    def test_delete_flags_entry(self, maintainer, document_store, make_item):
        item = make_item("a")
        maintainer.apply_item_write(None, item)

        assert maintainer.apply_item_write(item, None) is None

        stored, entry = load(document_store, "a")
        assert stored is None
        assert not entry.is_active
        assert entry.pending_prune

    def test_nothing_to_write(self, maintainer):
        with pytest.raises(InvalidInputError):
            maintainer.apply_item_write(None, None)


class TestCounters:
    """Test view and like counters."""

    def test_increment_view(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        assert maintainer.increment_view("a") == 1
        assert maintainer.increment_view("a") == 2

        item, entry = load(document_store, "a")
        assert item.views == entry.views == 2

    def test_views_do_not_touch_updated_at(self, maintainer, document_store, make_item):
        original = make_item("a")
        maintainer.apply_item_write(None, original)
        maintainer.increment_view("a")

        item, _ = load(document_store, "a")
        assert item.updated_at == original.updated_at

    def test_like_is_idempotent(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        assert maintainer.toggle_like("a", "u1", liked=True) == 1
        assert maintainer.toggle_like("a", "u1", liked=True) == 1
        assert maintainer.toggle_like("a", "u2", liked=True) == 2

        item, entry = load(document_store, "a")
        assert item.liked_by == ["u1", "u2"]
        assert entry.likes == 2

    def test_unlike_floors_at_zero(self, maintainer, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        assert maintainer.toggle_like("a", "u1", liked=False) == 0
        maintainer.toggle_like("a", "u1", liked=True)
        assert maintainer.toggle_like("a", "u1", liked=False) == 0

    def test_unknown_item(self, maintainer):
        with pytest.raises(ItemNotFoundError):
            maintainer.increment_view("missing")

    def test_missing_id(self, maintainer):
        with pytest.raises(InvalidInputError):
            maintainer.toggle_like("", "u1", liked=True)


class TestConcurrentCounters:
    """Test counters shared by several writer threads on a file database."""

    @pytest.fixture
    def shared(self, tmp_path, make_item, now):
        store = DocumentStore(DatabaseConfig(url=f"sqlite:///{tmp_path / 'counters.db'}"))
        maintainer = IndexMaintainer(store, clock=lambda: now)
        maintainer.apply_item_write(None, make_item("x"))
        yield maintainer
        store.dispose()

    def test_no_view_is_lost(self, shared):
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: shared.increment_view("x"), range(200)))

        item, entry = load(shared.store, "x")
        assert item.views == 200
        assert entry.views == 200

    def test_no_like_is_lost(self, shared):
        users = [f"u{index}" for index in range(40)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda user: shared.toggle_like("x", user, True), users))

        item, entry = load(shared.store, "x")
        assert item.likes == 40
        assert sorted(item.liked_by) == sorted(users)
        assert entry.likes == 40


class TestItemEdits:
    """Test price, sale and field edits."""

    def test_price_drop(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a", price=40.0))

        change = maintainer.update_price("a", 30.0)

        assert change.is_drop
        assert change.discount_percent == 25
        _, entry = load(document_store, "a")
        assert entry.price == 30.0

    def test_price_increase_is_not_a_drop(self, maintainer, make_item):
        maintainer.apply_item_write(None, make_item("a", price=40.0))
        change = maintainer.update_price("a", 50.0)
        assert not change.is_drop
        assert change.discount_percent == 0

    def test_negative_price(self, maintainer, make_item):
        maintainer.apply_item_write(None, make_item("a"))
        with pytest.raises(InvalidInputError):
            maintainer.update_price("a", -1)

    def test_only_the_seller_edits(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        with pytest.raises(PermissionDeniedError):
            maintainer.update_fields("a", editor_id="someone-else", title="Robe volée")
        with pytest.raises(PermissionDeniedError):
            maintainer.update_price("a", 1.0, editor_id="someone-else")

        item, entry = load(document_store, "a")
        assert item.title == entry.title == "Robe a"
        assert item.price == 35
        assert maintainer.update_fields("a", editor_id="seller-1", title="Robe longue").title == "Robe longue"

    def test_mark_sold(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        item = maintainer.mark_sold("a")

        _, entry = load(document_store, "a")
        assert item.is_sold and entry.is_sold
        assert entry.pending_prune

    def test_update_fields(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        maintainer.update_fields("a", title="Veste en jean", latitude=48.85, longitude=2.35, city="Paris")

        _, entry = load(document_store, "a")
        assert entry.title_lowercase == "veste en jean"
        assert entry.geohash
        assert entry.city == "Paris"

    def test_update_fields_rejects_counters(self, maintainer, make_item):
        maintainer.apply_item_write(None, make_item("a"))
        with pytest.raises(InvalidInputError, match="not editable"):
            maintainer.update_fields("a", views=1000)

    def test_invalid_edit_rolls_back(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("a"))

        with pytest.raises(ValueError, match="latitude"):
            maintainer.update_fields("a", latitude=48.85)

        item, entry = load(document_store, "a")
        assert item.latitude is None
        assert entry.latitude is None
