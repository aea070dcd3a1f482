"""Outcome summary shared by the maintenance jobs."""

from typing import List

from pydantic import BaseModel, Field


class JobReport(BaseModel):
    """Aggregate counts for one job run."""

    job: str = Field(..., description="Job name")
    processed: int = Field(0, ge=0, description="Entries examined")
    updated: int = Field(0, ge=0, description="Entries written or deleted")
    skipped: int = Field(0, ge=0, description="Entries needing no change")
    failed: int = Field(0, ge=0, description="Entries whose update failed")
    failed_ids: List[str] = Field(default_factory=list, description="IDs of failed entries")
    duration_seconds: float = Field(0.0, ge=0.0, description="Wall time of the run")

    def record_failure(self, entry_id: str) -> None:
        self.failed += 1
        self.failed_ids.append(entry_id)

    def summary(self) -> str:
        return (
            f"{self.job}: {self.processed} processed, {self.updated} updated, "
            f"{self.skipped} skipped, {self.failed} failed in {self.duration_seconds:.2f}s"
        )
