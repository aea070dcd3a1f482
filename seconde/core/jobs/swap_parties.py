"""Periodic swap party status transitions."""

import time
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from seconde.core.jobs.batching import commit_in_batches
from seconde.core.jobs.report import JobReport
from seconde.database.document_store import DocumentStore
from seconde.database.models import SwapPartyRow, row_to_swap_party
from seconde.domain.entities import SwapPartyStatus
from seconde.utils import get_logger, log_exception

logger = get_logger(__name__)

JOB_NAME = "swap_party_status"

# (party id, expected current status, next status)
Transition = Tuple[str, SwapPartyStatus, SwapPartyStatus]


def update_swap_party_statuses(
    store: DocumentStore,
    now: datetime,
    batch_limit: int = 500,
) -> JobReport:
    """
    Move parties one step along upcoming -> active -> completed.

    A party is only updated if its status is still the one read during
    the scan, so overlapping runs cannot skip a step.
    """
    start_time = time.time()
    report = JobReport(job=JOB_NAME)
    logger.info(f"Checking swap party statuses at {now.isoformat()}")

    with store.session() as session:
        rows = session.scalars(
            select(SwapPartyRow).where(
                SwapPartyRow.status.in_([SwapPartyStatus.UPCOMING.value, SwapPartyStatus.ACTIVE.value])
            )
        ).all()
        parties = []
        for row in rows:
            report.processed += 1
            try:
                parties.append(row_to_swap_party(row))
            except (ValueError, TypeError) as e:
                log_exception(logger, f"read swap party {row.id}", e)
                report.record_failure(row.id)

    pending: List[Transition] = []
    for party in parties:
        target = party.next_status(now)
        if target is None:
            report.skipped += 1
        else:
            pending.append((party.id, party.status, target))

    def write(session: Session, change: Transition) -> int:
        party_id, current, target = change
        result = session.execute(
            update(SwapPartyRow)
            .where(SwapPartyRow.id == party_id, SwapPartyRow.status == current.value)
            .values(status=target.value, updated_at=now)
        )
        if result.rowcount:
            logger.info(f"Swap party {party_id}: {current.value} -> {target.value}")
        return result.rowcount

    commit_in_batches(store, pending, batch_limit, write, lambda change: change[0], report, logger)

    report.duration_seconds = time.time() - start_time
    logger.info(report.summary())
    return report
