"""Unit tests for domain entities."""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from seconde.domain.entities import (
    EmbeddingRecord,
    Item,
    Moment,
    StyleProfile,
    SuggestedSizes,
    SwapParty,
    SwapPartyStatus,
    price_range,
)


def at(month: int, day: int, hour: int = 12) -> datetime:
    return datetime(2025, month, day, hour, tzinfo=timezone.utc)


class TestItem:
    """Test item validation and derived properties."""

    def test_listed(self):
        item = Item(id="a", title="Robe", price=10, seller_id="s")
        assert item.is_listed
        assert item.primary_image is None
        assert item.coordinates is None

    @pytest.mark.parametrize("kwargs,message", [
        ({"id": ""}, "id"),
        ({"title": ""}, "title"),
        ({"price": -1}, "price"),
        ({"latitude": 48.0}, "latitude"),
    ])
    def test_validation(self, kwargs, message):
        values = {"id": "a", "title": "Robe", "price": 10, "seller_id": "s", **kwargs}
        with pytest.raises(ValueError, match=message):
            Item(**values)

    def test_sold_is_not_listed(self):
        assert not Item(id="a", title="Robe", price=10, seller_id="s", is_sold=True).is_listed


class TestEmbeddingRecord:
    """Test embedding record coercion."""

    def test_coerces_to_float32(self):
        record = EmbeddingRecord(item_id="a", vector=[1, 0, 0], image_url="a.jpg")
        assert record.vector.dtype == np.float32
        assert record.dimension == 3

    def test_rejects_matrix(self):
        with pytest.raises(ValueError, match="1D"):
            EmbeddingRecord(item_id="a", vector=np.ones((2, 2)), image_url="a.jpg")

    @pytest.mark.parametrize("price,bucket", [(5, "low"), (20, "medium"), (100, "medium"), (100.5, "high")])
    def test_price_range(self, price, bucket):
        assert price_range(price) == bucket


class TestMoment:
    """Test recurring window matching."""

    def test_window_inclusive(self):
        rentree = Moment(id="rentree", name="Rentrée", start="09-01", end="09-30")
        assert rentree.is_live(at(9, 1, 0))
        assert rentree.is_live(at(9, 15))
        assert rentree.is_live(datetime(2025, 9, 30, 23, 59, tzinfo=timezone.utc))
        assert not rentree.is_live(at(10, 1, 0))
        assert not rentree.is_live(at(8, 31))

    def test_recurs_every_year(self):
        rentree = Moment(id="rentree", name="Rentrée", start="09-01", end="09-30")
        assert rentree.is_live(datetime(2031, 9, 10, tzinfo=timezone.utc))

    def test_wraps_year_end(self):
        fetes = Moment(id="fetes", name="Fêtes", start="12-20", end="01-07")
        assert fetes.is_live(at(12, 25))
        assert fetes.is_live(at(1, 3))
        assert not fetes.is_live(at(1, 8))
        assert not fetes.is_live(at(12, 19))

    def test_inactive_never_live(self):
        moment = Moment(id="m", name="M", start="01-01", end="12-31", is_active=False)
        assert not moment.is_live(at(6, 1))

    def test_invalid_bounds(self):
        with pytest.raises(ValueError, match="MM-DD"):
            Moment(id="m", name="M", start="9-1", end="09-30")


class TestSwapParty:
    """Test status transitions."""

    def make_party(self, status=SwapPartyStatus.UPCOMING):
        return SwapParty(id="p", name="Party", start_date=at(9, 10), end_date=at(9, 12), status=status)

    def test_upcoming_before_start(self):
        assert self.make_party().next_status(at(9, 9)) is None

    def test_starts(self):
        assert self.make_party().next_status(at(9, 10)) is SwapPartyStatus.ACTIVE

    def test_one_step_at_a_time(self):
        """A fully past party only becomes active on the first evaluation."""
        party = self.make_party()
        assert party.next_status(at(9, 20)) is SwapPartyStatus.ACTIVE

        party.status = SwapPartyStatus.ACTIVE
        assert party.next_status(at(9, 20)) is SwapPartyStatus.COMPLETED

    def test_completed_is_terminal(self):
        assert self.make_party(SwapPartyStatus.COMPLETED).next_status(at(12, 1)) is None

    def test_status_coerced_from_string(self):
        assert self.make_party("active").status is SwapPartyStatus.ACTIVE

    def test_end_after_start(self):
        with pytest.raises(ValueError):
            SwapParty(id="p", name="P", start_date=at(9, 10), end_date=at(9, 10) - timedelta(hours=1))


class TestStyleProfile:
    """Test size extraction."""

    def test_distinct_sizes(self):
        profile = StyleProfile(suggested_sizes=SuggestedSizes(top="M", bottom="38"))
        assert profile.sizes() == ["M", "38"]

    def test_same_size_once(self):
        profile = StyleProfile(suggested_sizes=SuggestedSizes(top="M", bottom="M"))
        assert profile.sizes() == ["M"]

    def test_no_sizes(self):
        assert StyleProfile().sizes() == []
