"""
Use cases for swap parties: the derived leaderboard and the party to show
right now.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import select

from seconde.database.document_store import DocumentStore
from seconde.database.models import SwapPartyRow, SwapRow, row_to_swap, row_to_swap_party
from seconde.domain.entities import LeaderboardEntry, SwapParty, SwapPartyStatus
from seconde.utils import get_logger
from seconde.utils.exceptions import InvalidInputError

logger = get_logger(__name__)

COMPLETED = "completed"


@dataclass
class ActivePartyInfo:
    """The running party, or the next one when none is running."""

    party: Optional[SwapParty] = None
    next_party: Optional[SwapParty] = None

    @property
    def has_active_party(self) -> bool:
        return self.party is not None


class SwapPartyUseCase:
    """Read side of swap parties."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    def leaderboard(self, party_id: str, limit: int = 10) -> List[LeaderboardEntry]:
        """
        Completed swap counts per participant, highest first.

        Both sides of a swap get a point. Equal counts keep the order in
        which participants first appeared.
        """
        if not party_id:
            raise InvalidInputError("Party id is required", field="party_id")
        if limit < 1:
            raise InvalidInputError("Limit must be positive", field="limit", value=limit)

        with self.documents.session() as session:
            rows = session.scalars(
                select(SwapRow)
                .where(SwapRow.party_id == party_id, SwapRow.status == COMPLETED)
                .order_by(SwapRow.id)
            ).all()
            swaps = [row_to_swap(row) for row in rows]

        counts: Dict[str, LeaderboardEntry] = {}
        for swap in swaps:
            for user_id, name, image in (
                (swap.initiator_id, swap.initiator_name, swap.initiator_image),
                (swap.receiver_id, swap.receiver_name, swap.receiver_image),
            ):
                entry = counts.setdefault(user_id, LeaderboardEntry(user_id=user_id, count=0, name=name, image=image))
                entry.count += 1

        ranked = sorted(counts.values(), key=lambda entry: -entry.count)
        logger.debug(f"Leaderboard for {party_id}: {len(swaps)} swaps, {len(ranked)} participants")
        return ranked[:limit]

    def active_party_info(self) -> ActivePartyInfo:
        """The active party if any, otherwise the earliest upcoming one."""
        with self.documents.session() as session:
            active = session.scalars(
                select(SwapPartyRow)
                .where(SwapPartyRow.status == SwapPartyStatus.ACTIVE.value)
                .order_by(SwapPartyRow.start_date)
                .limit(1)
            ).first()
            if active is not None:
                return ActivePartyInfo(party=row_to_swap_party(active))

            upcoming = session.scalars(
                select(SwapPartyRow)
                .where(SwapPartyRow.status == SwapPartyStatus.UPCOMING.value)
                .order_by(SwapPartyRow.start_date)
                .limit(1)
            ).first()
            if upcoming is not None:
                return ActivePartyInfo(next_party=row_to_swap_party(upcoming))

        return ActivePartyInfo()
