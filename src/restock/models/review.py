"""Review Pack: the aggregate handed to any rendering layer."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from restock.models.cart import CartDiff, CartSnapshot
from restock.models.enhancement import EnhancementResult
from restock.models.pruning import PruneDecision, PruneReport
from restock.models.slots import ScoredSlot
from restock.models.substitution import SubstitutionResult

WarningType = Literal["out_of_stock", "price_change", "data_quality", "missing_item"]
Severity = Literal["info", "warning", "error"]


class ReviewWarning(BaseModel):
    """Something the reviewer should look at before approving."""

    type: WarningType
    message: str
    severity: Severity = "warning"
    item_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ReviewConfidence(BaseModel):
    """Scalar confidence summaries for the whole pack."""

    cart_accuracy: float = Field(ge=0.0, le=1.0)
    data_quality: float = Field(ge=0.0, le=1.0)
    pruning: float = Field(ge=0.0, le=1.0)
    substitution: float = Field(ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class ReviewCart(BaseModel):
    before: CartSnapshot
    after: CartSnapshot
    diff: CartDiff

    model_config = ConfigDict(frozen=True)


class ReviewPack(BaseModel):
    """Everything produced by one review session."""

    session_id: str
    household_id: str = "default"
    generated_at: datetime
    cart: ReviewCart
    pruning: PruneReport
    substitutions: list[SubstitutionResult] = Field(default_factory=list)
    slots: list[ScoredSlot] = Field(default_factory=list)
    prune_enhancement: Optional[EnhancementResult[PruneDecision]] = None
    substitution_enhancement: Optional[EnhancementResult[SubstitutionResult]] = None
    warnings: list[ReviewWarning] = Field(default_factory=list)
    confidence: ReviewConfidence

    model_config = ConfigDict(frozen=True)


__all__ = [
    "WarningType",
    "ReviewWarning",
    "ReviewConfidence",
    "ReviewCart",
    "ReviewPack",
]
