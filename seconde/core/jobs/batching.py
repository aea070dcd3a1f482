"""Chunked commits for the maintenance jobs."""

import logging
from typing import Callable, List, TypeVar

from sqlalchemy.orm import Session

from seconde.core.jobs.report import JobReport
from seconde.database.document_store import DocumentStore, chunked
from seconde.utils import log_exception

T = TypeVar("T")


def commit_in_batches(
    store: DocumentStore,
    pending: List[T],
    batch_limit: int,
    write: Callable[[Session, T], int],
    key: Callable[[T], str],
    report: JobReport,
    logger: logging.Logger,
) -> None:
    """
    Apply ``write`` to every pending change, one transaction per chunk.

    ``write`` returns how many rows it changed. A chunk that fails to
    commit counts every one of its entries as failed; the next chunk still runs.
    """
    for number, chunk in enumerate(chunked(pending, batch_limit), start=1):

        def work(session: Session) -> int:
            return sum(write(session, change) for change in chunk)

        try:
            report.updated += store.run_transaction(work)
        except Exception as e:
            log_exception(logger, f"{report.job} batch {number} ({len(chunk)} entries)", e)
            for change in chunk:
                report.record_failure(key(change))
