"""Substitute candidate and ranking models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from restock.models.cart import CartItem


class SubstituteCandidate(BaseModel):
    """Replacement product proposed by the retailer or found by search."""

    product_id: str = Field(alias="productId")
    name: str = Field(min_length=1)
    brand: Optional[str] = None
    size: Optional[str] = None
    unit_price: float = Field(ge=0, alias="unitPrice")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    available: bool = True

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SubstituteScore(BaseModel):
    """Per-factor similarity between a candidate and the original item."""

    brand_similarity: float = Field(ge=0.0, le=1.0)
    size_similarity: float = Field(ge=0.0, le=1.0)
    price_similarity: float = Field(ge=0.0, le=1.0)
    category_match: float = Field(ge=0.0, le=1.0)
    overall: float = Field(ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class RankedSubstitute(BaseModel):
    """Candidate with its score breakdown and explanation."""

    candidate: SubstituteCandidate
    score: SubstituteScore
    price_delta: float
    reason: str

    model_config = ConfigDict(frozen=True)


class SubstitutionResult(BaseModel):
    """Ranked substitutes for one unavailable cart item."""

    original_item: CartItem
    substitutes: list[RankedSubstitute] = Field(default_factory=list)
    search_query: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def has_substitutes(self) -> bool:
        return bool(self.substitutes)

    @property
    def best(self) -> Optional[RankedSubstitute]:
        return self.substitutes[0] if self.substitutes else None


__all__ = [
    "SubstituteCandidate",
    "SubstituteScore",
    "RankedSubstitute",
    "SubstitutionResult",
]
