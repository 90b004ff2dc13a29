"""Classification data models."""

from pydantic import BaseModel, Field

FALLBACK_CATEGORY = "No Categorizado"
FALLBACK_CLASSIFICATION = "Manual"


class Classification(BaseModel):
    """Category and detailed classification assigned to an expense."""

    category: str = Field(..., min_length=1, description="General category (e.g. Comida)")
    classification: str = Field(..., min_length=1, description="Detailed label (e.g. Restaurante)")

    @classmethod
    def fallback(cls) -> "Classification":
        return cls(category=FALLBACK_CATEGORY, classification=FALLBACK_CLASSIFICATION)

    @property
    def is_fallback(self) -> bool:
        return (
            self.category == FALLBACK_CATEGORY
            and self.classification == FALLBACK_CLASSIFICATION
        )
