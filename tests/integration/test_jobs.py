"""Integration tests for the maintenance jobs and their scheduler."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from seconde.core.jobs import prune_index, recompute_popularity, update_swap_party_statuses
from seconde.core.jobs.batching import commit_in_batches
from seconde.core.jobs.report import JobReport
from seconde.core.jobs.scheduler import MaintenanceScheduler
from seconde.core.scoring import popularity_score
from seconde.database import SearchIndexRow, SwapPartyRow, swap_party_to_row
from seconde.domain.entities import SwapParty, SwapPartyStatus
from seconde.utils import get_logger


def index_ids(document_store):
    with document_store.session() as session:
        return sorted(session.scalars(select(SearchIndexRow.id)).all())


def score_of(document_store, item_id):
    with document_store.session() as session:
        return session.get(SearchIndexRow, item_id).popularity_score


class TestPopularityJob:
    """Test popularity recomputation."""

    def test_recomputes_stale_scores(self, maintainer, document_store, make_item, now):
        maintainer.apply_item_write(None, make_item("a", views=100, likes=20, created_at=now))
        later = now + timedelta(days=30)

        report = recompute_popularity(document_store, later)

        assert report.processed == 1
        assert report.updated == 1
        assert score_of(document_store, "a") == pytest.approx(popularity_score(100, 20, now, later))

    def test_second_run_writes_nothing(self, maintainer, document_store, make_item, now):
        maintainer.apply_item_write(None, make_item("a", views=100, likes=20, created_at=now))
        later = now + timedelta(days=30)

        recompute_popularity(document_store, later)
        report = recompute_popularity(document_store, later)

        assert report.updated == 0
        assert report.skipped == 1

    def test_small_changes_skipped(self, maintainer, document_store, make_item, now):
        """A drift below the epsilon leaves the stored score alone."""
        maintainer.apply_item_write(None, make_item("a", views=1, likes=0, created_at=now))

        report = recompute_popularity(document_store, now + timedelta(days=1))

        assert report.updated == 0
        assert score_of(document_store, "a") == pytest.approx(0.1)

    def test_unlisted_entries_ignored(self, maintainer, document_store, make_item, now):
        maintainer.apply_item_write(None, make_item("a", views=100, is_sold=True, created_at=now))
        report = recompute_popularity(document_store, now + timedelta(days=30))
        assert report.processed == 0


class TestPruningJob:
    """Test index pruning."""

    def test_removes_unlisted_entries(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("keep"))
        maintainer.apply_item_write(None, make_item("sold", is_sold=True))
        maintainer.apply_item_write(None, make_item("hidden", is_active=False))
        maintainer.apply_item_write(None, make_item("pending", moderation_status="pending"))

        report = prune_index(document_store)

        assert report.updated == 3
        assert index_ids(document_store) == ["keep"]

    def test_idempotent(self, maintainer, document_store, make_item):
        maintainer.apply_item_write(None, make_item("sold", is_sold=True))

        prune_index(document_store)
        report = prune_index(document_store)

        assert report.processed == 0
        assert report.updated == 0

    def test_small_batches(self, maintainer, document_store, make_item):
        for index in range(5):
            maintainer.apply_item_write(None, make_item(f"sold-{index}", is_sold=True))

        report = prune_index(document_store, batch_limit=2)

        assert report.updated == 5
        assert index_ids(document_store) == []


class TestSwapPartyJob:
    """Test swap party status transitions."""

    def add_party(self, document_store, now, party_id="p", **overrides):
        values = {
            "id": party_id,
            "name": "Swap",
            "start_date": now - timedelta(days=3),
            "end_date": now - timedelta(days=1),
        }
        values.update(overrides)
        document_store.add_all([swap_party_to_row(SwapParty(**values))])

    def status_of(self, document_store, party_id="p"):
        with document_store.session() as session:
            return session.get(SwapPartyRow, party_id).status

    def test_one_step_per_run(self, document_store, now):
        """A party whose whole range has passed needs two runs to complete."""
        self.add_party(document_store, now)

        update_swap_party_statuses(document_store, now)
        assert self.status_of(document_store) == "active"

        update_swap_party_statuses(document_store, now)
        assert self.status_of(document_store) == "completed"

        report = update_swap_party_statuses(document_store, now)
        assert report.processed == 0

    def test_future_party_untouched(self, document_store, now):
        self.add_party(document_store, now, start_date=now + timedelta(days=1), end_date=now + timedelta(days=2))

        report = update_swap_party_statuses(document_store, now)

        assert report.skipped == 1
        assert self.status_of(document_store) == "upcoming"

    def test_running_party_stays_active(self, document_store, now):
        self.add_party(
            document_store, now,
            start_date=now - timedelta(hours=1),
            end_date=now + timedelta(hours=1),
            status=SwapPartyStatus.ACTIVE,
        )
        update_swap_party_statuses(document_store, now)
        assert self.status_of(document_store) == "active"


class TestBatching:
    """Test chunk failure accounting."""

    def test_failed_chunk_counted_and_next_chunk_runs(self, document_store):
        report = JobReport(job="test")

        def write(session, value):
            if value == 3:
                raise RuntimeError("boom")
            return 1

        commit_in_batches(
            document_store, [1, 2, 3, 4, 5], 2, write, str, report, get_logger("tests.batching"),
        )

        assert report.updated == 3
        assert report.failed == 2
        assert report.failed_ids == ["3", "4"]


class TestMaintenanceScheduler:
    """Test job registration and dispatch."""

    def test_job_names(self, document_store, test_config):
        scheduler = MaintenanceScheduler(document_store, test_config)
        assert scheduler.job_names == ["popularity", "prune_index", "swap_party_status"]

    def test_run_once(self, maintainer, document_store, test_config, make_item, now):
        maintainer.apply_item_write(None, make_item("sold", is_sold=True))
        scheduler = MaintenanceScheduler(document_store, test_config, clock=lambda: now)

        report = scheduler.run_once("prune_index")

        assert report.job == "prune_index"
        assert report.updated == 1

    def test_unknown_job(self, document_store, test_config):
        with pytest.raises(ValueError, match="Unknown job"):
            MaintenanceScheduler(document_store, test_config).run_once("reindex")

    def test_start_registers_intervals(self, document_store, test_config):
        scheduler = MaintenanceScheduler(document_store, test_config)
        scheduler.start()
        try:
            assert sorted(job.id for job in scheduler.scheduler.get_jobs()) == sorted(scheduler.job_names)
        finally:
            scheduler.shutdown(wait=False)
        assert not scheduler.scheduler.running

    def test_tick_swallows_failures(self, document_store, test_config, monkeypatch):
        scheduler = MaintenanceScheduler(document_store, test_config)

        def fail(now):
            raise RuntimeError("database gone")

        monkeypatch.setitem(scheduler.jobs, "prune_index", fail)
        scheduler._tick("prune_index")
