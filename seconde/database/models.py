"""SQLAlchemy ORM rows for the document collections.

Each collection is a flat keyed table; list and dict fields live in JSON
columns and nothing is joined at query time. Column names match the
attribute names of the domain entities so rows convert with the helpers
at the bottom of this module.
"""

from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Optional, Type, TypeVar

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from seconde.domain.entities import (
    Item,
    Moment,
    SearchIndexEntry,
    StyleProfile,
    SuggestedSizes,
    Swap,
    SwapParty,
    UserPreferences,
    UserProfile,
)
from seconde.domain.entities.item import utcnow

E = TypeVar("E")


class UTCDateTime(TypeDecorator):
    """Stores UTC datetimes naive and hands them back timezone-aware."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime refused: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class ItemRow(Base):
    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text)
    price: Mapped[float] = mapped_column(Float)
    seller_id: Mapped[str] = mapped_column(String(64), index=True)
    condition: Mapped[str] = mapped_column(String(32), default="good")
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    material: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
    images: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_sold: Mapped[bool] = mapped_column(Boolean, default=False)
    moderation_status: Mapped[str] = mapped_column(String(32), default="approved")
    views: Mapped[int] = mapped_column(Integer, default=0)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    liked_by: Mapped[list] = mapped_column(JSON, default=list)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    city: Mapped[str] = mapped_column(String(128), default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class SearchIndexRow(Base):
    __tablename__ = "search_index"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text)
    title_lowercase: Mapped[str] = mapped_column(Text)
    price: Mapped[float] = mapped_column(Float)
    seller_id: Mapped[str] = mapped_column(String(64), index=True)
    condition: Mapped[str] = mapped_column(String(32))
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    brand: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    size: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    keywords: Mapped[list] = mapped_column(JSON, default=list)
    first_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    city: Mapped[str] = mapped_column(String(128), default="")
    geohash: Mapped[str] = mapped_column(String(12), default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    is_sold: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    views: Mapped[int] = mapped_column(Integer, default=0)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    popularity_score: Mapped[float] = mapped_column(Float, default=0.0)
    last_indexed: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    pending_prune: Mapped[bool] = mapped_column(Boolean, default=False, index=True)


class MomentRow(Base):
    __tablename__ = "moments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    start: Mapped[str] = mapped_column(String(5))
    end: Mapped[str] = mapped_column(String(5))
    priority: Mapped[int] = mapped_column(Integer, default=0)
    emoji: Mapped[str] = mapped_column(String(16), default="")
    embedding: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class SwapPartyRow(Base):
    __tablename__ = "swap_parties"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    start_date: Mapped[datetime] = mapped_column(UTCDateTime)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime)
    status: Mapped[str] = mapped_column(String(16), default="upcoming", index=True)
    emoji: Mapped[str] = mapped_column(String(16), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    participants_count: Mapped[int] = mapped_column(Integer, default=0)
    items_count: Mapped[int] = mapped_column(Integer, default=0)
    swaps_count: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class SwapRow(Base):
    __tablename__ = "swaps"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    initiator_id: Mapped[str] = mapped_column(String(64))
    receiver_id: Mapped[str] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    party_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    initiator_name: Mapped[str] = mapped_column(String(128), default="")
    receiver_name: Mapped[str] = mapped_column(String(128), default="")
    initiator_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    receiver_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(128), default="")
    style_profile: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    preferences: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)


def row_to_entity(row: Base, entity_cls: Type[E]) -> E:
    """Build a dataclass entity from a row with matching column names."""
    return entity_cls(**{f.name: getattr(row, f.name) for f in fields(entity_cls)})


def entity_columns(entity: Any) -> dict:
    """Column values for a dataclass entity, lists copied."""
    values = {}
    for f in fields(entity):
        value = getattr(entity, f.name)
        if isinstance(value, list):
            value = list(value)
        values[f.name] = value
    return values


def item_to_row(item: Item) -> ItemRow:
    return ItemRow(**entity_columns(item))


def row_to_item(row: ItemRow) -> Item:
    return row_to_entity(row, Item)


def row_to_index_entry(row: SearchIndexRow) -> SearchIndexEntry:
    return row_to_entity(row, SearchIndexEntry)


def moment_to_row(moment: Moment) -> MomentRow:
    return MomentRow(**entity_columns(moment))


def row_to_moment(row: MomentRow) -> Moment:
    return row_to_entity(row, Moment)


def swap_party_to_row(party: SwapParty) -> SwapPartyRow:
    columns = entity_columns(party)
    columns["status"] = party.status.value
    return SwapPartyRow(**columns)


def row_to_swap_party(row: SwapPartyRow) -> SwapParty:
    return row_to_entity(row, SwapParty)


def swap_to_row(swap: Swap) -> SwapRow:
    return SwapRow(**entity_columns(swap))


def row_to_swap(row: SwapRow) -> Swap:
    return row_to_entity(row, Swap)


def user_to_row(user: UserProfile) -> UserRow:
    """Flatten nested profile dataclasses into JSON documents."""
    style = None
    if user.style_profile is not None:
        profile = user.style_profile
        style = {
            "confidence": profile.confidence,
            "recommended_brands": list(profile.recommended_brands),
            "suggested_sizes": {
                "top": profile.suggested_sizes.top,
                "bottom": profile.suggested_sizes.bottom,
            },
            "style_tags": list(profile.style_tags),
        }
    preferences = None
    if user.preferences is not None:
        preferences = {
            "favorite_brands": list(user.preferences.favorite_brands),
            "sizes": list(user.preferences.sizes),
        }
    return UserRow(
        id=user.id,
        display_name=user.display_name,
        style_profile=style,
        preferences=preferences,
    )


def row_to_user(row: UserRow) -> UserProfile:
    style = None
    if row.style_profile:
        data = row.style_profile
        sizes = data.get("suggested_sizes") or {}
        style = StyleProfile(
            confidence=float(data.get("confidence", 0.0)),
            recommended_brands=list(data.get("recommended_brands") or []),
            suggested_sizes=SuggestedSizes(top=sizes.get("top"), bottom=sizes.get("bottom")),
            style_tags=list(data.get("style_tags") or []),
        )
    preferences = None
    if row.preferences:
        data = row.preferences
        preferences = UserPreferences(
            favorite_brands=list(data.get("favorite_brands") or []),
            sizes=list(data.get("sizes") or []),
        )
    return UserProfile(
        id=row.id,
        display_name=row.display_name,
        style_profile=style,
        preferences=preferences,
    )
