"""Stock pruning decision and configuration models."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from restock.categories import ProductCategory

CadenceSource = Literal["learned", "category-default", "user-override", "no-history"]


class PruneReason(str, Enum):
    """Why a prune decision landed where it did."""

    RECENTLY_PURCHASED = "recently-purchased"
    ADEQUATE_STOCK = "adequate-stock"
    APPROACHING_RESTOCK = "approaching-restock"
    OVERDUE_RESTOCK = "overdue-restock"
    NO_HISTORY = "no-history"
    DUPLICATE_IN_CART = "duplicate-in-cart"
    USER_PREFERENCE = "user-preference"


class PrunerConfig(BaseModel):
    """Tuning knobs for the stock pruner."""

    conservative_mode: bool = Field(default=True)
    min_prune_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    use_learned_cadences: bool = Field(default=True)
    conservative_margin: float = Field(default=0.1, ge=0.0, le=1.0)
    min_purchases_for_learning: int = Field(default=2, ge=2)

    model_config = ConfigDict(frozen=True)

    @property
    def effective_threshold(self) -> float:
        if not self.conservative_mode:
            return self.min_prune_confidence
        return min(1.0, self.min_prune_confidence + self.conservative_margin)


class UserOverride(BaseModel):
    """Household-specified pruning preference for one product."""

    product_name: str = Field(min_length=1)
    never_prune: bool = Field(default=False)
    always_prune: bool = Field(default=False)
    custom_cadence_days: Optional[int] = Field(default=None, ge=1)

    model_config = ConfigDict(frozen=True)


class PruneContext(BaseModel):
    """Evidence behind a prune decision."""

    days_since_last_purchase: Optional[int] = Field(default=None, ge=0)
    category: ProductCategory = ProductCategory.UNKNOWN
    restock_cadence_days: int = Field(ge=1)
    cadence_source: CadenceSource = "category-default"
    urgency_ratio: Optional[float] = Field(default=None, ge=0)
    last_purchase_date: Optional[date] = None

    model_config = ConfigDict(frozen=True)


class PruneDecision(BaseModel):
    """Per cart item recommendation to remove or keep."""

    product_id: Optional[str] = None
    product_name: str
    prune: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    reason_code: PruneReason
    context: PruneContext

    model_config = ConfigDict(frozen=True)


class PruneSummary(BaseModel):
    """Aggregate statistics across a pruning run."""

    total_items: int = 0
    recommended_removals: int = 0
    keep_items: int = 0
    uncertain_items: int = 0
    average_confidence: float = 0.0
    by_category: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class PruneReport(BaseModel):
    """Decisions bucketed by how confident the pruner is."""

    recommended_removals: list[PruneDecision] = Field(default_factory=list)
    uncertain_items: list[PruneDecision] = Field(default_factory=list)
    keep_items: list[PruneDecision] = Field(default_factory=list)
    summary: PruneSummary = Field(default_factory=PruneSummary)
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def decisions(self) -> list[PruneDecision]:
        return [*self.recommended_removals, *self.uncertain_items, *self.keep_items]


__all__ = [
    "CadenceSource",
    "PruneReason",
    "PrunerConfig",
    "UserOverride",
    "PruneContext",
    "PruneDecision",
    "PruneSummary",
    "PruneReport",
]
