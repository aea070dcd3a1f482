"""Periodic removal of index entries that no longer belong in discovery."""

import time
from typing import List

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from seconde.core.jobs.batching import commit_in_batches
from seconde.core.jobs.report import JobReport
from seconde.database.document_store import DocumentStore
from seconde.database.models import SearchIndexRow
from seconde.utils import get_logger

logger = get_logger(__name__)

JOB_NAME = "prune_index"

# Re-checked at delete time so an entry relisted since the scan survives
_PRUNABLE = or_(
    SearchIndexRow.is_active.is_(False),
    SearchIndexRow.is_sold.is_(True),
    SearchIndexRow.pending_prune.is_(True),
)


def prune_index(store: DocumentStore, batch_limit: int = 500) -> JobReport:
    """
    Delete index entries that are inactive, sold or flagged for pruning.

    Idempotent: a second run finds nothing left to delete.

    Args:
        store: Document store holding the search index
        batch_limit: Maximum deletes per committed transaction

    Returns:
        JobReport; ``updated`` counts deleted entries
    """
    start_time = time.time()
    report = JobReport(job=JOB_NAME)
    logger.info("Starting search index pruning")

    with store.session() as session:
        ids: List[str] = list(session.scalars(select(SearchIndexRow.id).where(_PRUNABLE)).all())
    report.processed = len(ids)

    def write(session: Session, entry_id: str) -> int:
        result = session.execute(
            delete(SearchIndexRow).where(SearchIndexRow.id == entry_id, _PRUNABLE)
        )
        return result.rowcount

    commit_in_batches(store, ids, batch_limit, write, lambda entry_id: entry_id, report, logger)
    report.skipped = report.processed - report.updated - report.failed

    report.duration_seconds = time.time() - start_time
    logger.info(report.summary())
    return report
