"""Expense data models."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator

from classification.models import FALLBACK_CATEGORY


class ExpenseCreate(BaseModel):
    """Expense creation request model."""

    amount: Any = Field(..., description="Expense amount, as typed by the user")
    description: str = Field(..., description="Free text description")


class ExpenseUpdate(BaseModel):
    """Expense update request model."""

    amount: Optional[Any] = Field(None, description="New amount")
    description: Optional[str] = Field(None, description="New description")
    original_description: Optional[str] = Field(
        None,
        description="Description shown when edit mode was entered"
    )


class Expense(BaseModel):
    """Expense model."""

    expense_id: str
    amount: float
    description: str
    category: str = FALLBACK_CATEGORY
    classification: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    class Config:
        """Pydantic config."""
        from_attributes = True

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, value: Any) -> Any:
        return value or FALLBACK_CATEGORY

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Expense":
        """Build an Expense from a stored DynamoDB item."""
        return cls.model_validate(item)
