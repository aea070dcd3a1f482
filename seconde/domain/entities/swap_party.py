"""
Swap party entities: time-boxed community exchange events and the swaps
made during them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from seconde.domain.entities.item import utcnow


class SwapPartyStatus(str, Enum):
    """Lifecycle of a swap party."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class SwapParty:
    """A swap event with a fixed date range and running counters."""

    id: str
    name: str
    start_date: datetime
    end_date: datetime
    status: SwapPartyStatus = SwapPartyStatus.UPCOMING
    emoji: str = ""
    description: str = ""
    participants_count: int = 0
    items_count: int = 0
    swaps_count: int = 0
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.status = SwapPartyStatus(self.status)
        if self.end_date <= self.start_date:
            raise ValueError("SwapParty end_date must be after start_date")

    def next_status(self, now: datetime) -> Optional[SwapPartyStatus]:
        """
        Status the party should move to at ``now``, or None if unchanged.

        Only one step is taken per call, so a party whose whole range is in
        the past goes upcoming -> active on one run and active -> completed on
        the next.
        """
        if self.status is SwapPartyStatus.UPCOMING and now >= self.start_date:
            return SwapPartyStatus.ACTIVE
        if self.status is SwapPartyStatus.ACTIVE and now >= self.end_date:
            return SwapPartyStatus.COMPLETED
        return None


@dataclass
class Swap:
    """An exchange between two participants, optionally inside a party."""

    id: str
    initiator_id: str
    receiver_id: str
    status: str = "pending"
    party_id: Optional[str] = None
    initiator_name: str = ""
    receiver_name: str = ""
    initiator_image: Optional[str] = None
    receiver_image: Optional[str] = None


@dataclass
class LeaderboardEntry:
    """Completed swap count for one participant of a party."""

    user_id: str
    count: int
    name: str = ""
    image: Optional[str] = None
