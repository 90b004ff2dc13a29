"""Summary data models."""

from typing import List
from pydantic import BaseModel, Field


class CategorySummaryEntry(BaseModel):
    """Spending of one category and its share of the total."""

    category: str
    total: float
    percentage: float = Field(..., ge=0, le=100)


class ExpenseAggregate(BaseModel):
    """Total spend plus per-category breakdown, largest category first."""

    total_spent: float = 0.0
    category_data: List[CategorySummaryEntry] = []
