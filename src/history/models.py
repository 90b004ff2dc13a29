"""Archive (history) data models."""

from typing import List
from pydantic import BaseModel, Field

from summary.models import CategorySummaryEntry


class ArchiveRecord(BaseModel):
    """Snapshot of one archival. Written once, never updated."""

    archive_id: str
    title: str
    total_spent: float
    category_summary: List[CategorySummaryEntry] = []
    archive_date: str
    total_expenses_count: int = Field(..., ge=0)
    expense_ids: List[str] = []

    class Config:
        """Pydantic config."""
        from_attributes = True
        frozen = True


class ArchiveResult(BaseModel):
    """Outcome of clearing the expenses covered by an archive record."""

    archive: ArchiveRecord
    deleted_count: int
    failed_ids: List[str] = []

    @property
    def complete(self) -> bool:
        return not self.failed_ids
