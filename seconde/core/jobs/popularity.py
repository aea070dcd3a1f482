"""Periodic popularity score recomputation."""

import time
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from seconde.core.jobs.batching import commit_in_batches
from seconde.core.jobs.report import JobReport
from seconde.core.scoring.popularity import PopularityScorer
from seconde.database.document_store import DocumentStore
from seconde.database.models import SearchIndexRow
from seconde.utils import get_logger, log_exception
from seconde.utils.config import PopularityConfig

logger = get_logger(__name__)

JOB_NAME = "popularity"


def recompute_popularity(
    store: DocumentStore,
    now: datetime,
    weights: Optional[PopularityConfig] = None,
    batch_limit: int = 500,
) -> JobReport:
    """
    Recompute the popularity score of every listed index entry.

    Only scores that moved by more than the persist epsilon are written.
    Running twice with the same ``now`` writes nothing the second time.

    Args:
        store: Document store holding the search index
        now: Reference time for the recency decay
        weights: Popularity constants
        batch_limit: Maximum writes per committed transaction

    Returns:
        JobReport with processed/updated/skipped/failed counts

    Raises:
        DatabaseError: Only if the initial scan cannot be read
    """
    start_time = time.time()
    scorer = PopularityScorer(weights)
    report = JobReport(job=JOB_NAME)
    logger.info(f"Starting popularity recompute at {now.isoformat()}")

    with store.session() as session:
        rows = session.execute(
            select(
                SearchIndexRow.id,
                SearchIndexRow.views,
                SearchIndexRow.likes,
                SearchIndexRow.created_at,
                SearchIndexRow.popularity_score,
            ).where(
                SearchIndexRow.is_active.is_(True),
                SearchIndexRow.is_sold.is_(False),
            )
        ).all()

    pending: List[Tuple[str, float]] = []
    for entry_id, views, likes, created_at, current in rows:
        report.processed += 1
        try:
            score = scorer.score(views or 0, likes or 0, created_at, now)
        except Exception as e:
            log_exception(logger, f"score entry {entry_id}", e)
            report.record_failure(entry_id)
            continue

        if scorer.needs_update(current, score):
            pending.append((entry_id, score))
        else:
            report.skipped += 1

    def write(session: Session, change: Tuple[str, float]) -> int:
        entry_id, score = change
        result = session.execute(
            update(SearchIndexRow)
            .where(SearchIndexRow.id == entry_id)
            .values(popularity_score=score, last_indexed=now)
        )
        return result.rowcount

    commit_in_batches(store, pending, batch_limit, write, lambda change: change[0], report, logger)

    report.duration_seconds = time.time() - start_time
    logger.info(report.summary())
    return report
