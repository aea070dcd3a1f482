"""
Interval scheduling of the maintenance jobs with APScheduler.

The job functions take the current time as an argument; the scheduler is
the only place that reads the clock.

Example:
    >>> scheduler = MaintenanceScheduler(store, config)
    >>> scheduler.run_once("prune_index")
    >>> scheduler.start()
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from seconde.core.jobs import popularity, pruning, swap_parties
from seconde.core.jobs.report import JobReport
from seconde.database.document_store import DocumentStore
from seconde.domain.entities.item import utcnow
from seconde.utils import get_logger, log_exception
from seconde.utils.config import AppConfig

logger = get_logger(__name__)


class MaintenanceScheduler:
    """Registers the popularity, pruning and swap party jobs on intervals."""

    def __init__(
        self,
        store: DocumentStore,
        config: AppConfig,
        clock: Callable[[], datetime] = utcnow,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.store = store
        self.config = config
        self.clock = clock
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")

        batch_limit = config.jobs.batch_limit
        self.jobs: Dict[str, Callable[[datetime], JobReport]] = {
            popularity.JOB_NAME: lambda now: popularity.recompute_popularity(
                store, now, config.popularity, batch_limit
            ),
            pruning.JOB_NAME: lambda now: pruning.prune_index(store, batch_limit),
            swap_parties.JOB_NAME: lambda now: swap_parties.update_swap_party_statuses(
                store, now, batch_limit
            ),
        }
        self.intervals = {
            popularity.JOB_NAME: {"hours": config.jobs.popularity_interval_hours},
            pruning.JOB_NAME: {"hours": config.jobs.prune_interval_hours},
            swap_parties.JOB_NAME: {"minutes": config.jobs.swap_party_interval_minutes},
        }

    @property
    def job_names(self) -> List[str]:
        return list(self.jobs)

    def run_once(self, job_name: str, now: Optional[datetime] = None) -> JobReport:
        """Run one job synchronously.

        Raises:
            ValueError: If the job name is unknown
        """
        if job_name not in self.jobs:
            raise ValueError(f"Unknown job {job_name!r}. Choose from: {self.job_names}")
        return self.jobs[job_name](now or self.clock())

    def start(self) -> None:
        """Register every job and start the background scheduler."""
        for name, interval in self.intervals.items():
            self.scheduler.add_job(
                self._tick,
                "interval",
                args=[name],
                id=name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **interval,
            )
            logger.info(f"Scheduled {name} every {interval}")
        self.scheduler.start()
        logger.info("Maintenance scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Maintenance scheduler stopped")

    def _tick(self, job_name: str) -> None:
        # A scheduled run has no caller; failures end up in the logs
        try:
            self.run_once(job_name)
        except Exception as e:
            log_exception(logger, f"scheduled job {job_name}", e)
