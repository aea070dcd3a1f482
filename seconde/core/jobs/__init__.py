"""Scheduled maintenance jobs."""

from seconde.core.jobs.popularity import recompute_popularity
from seconde.core.jobs.pruning import prune_index
from seconde.core.jobs.report import JobReport
from seconde.core.jobs.swap_parties import update_swap_party_statuses

__all__ = [
    "JobReport",
    "prune_index",
    "recompute_popularity",
    "update_swap_party_statuses",
]
