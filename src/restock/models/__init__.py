"""Pydantic models defining shared data contracts."""

from restock.models.cart import CartDiff, CartItem, CartSnapshot, DiffSummary, QuantityChange
from restock.models.enhancement import Enhancement, EnhancedDecision, EnhancementResult
from restock.models.history import PurchaseHistoryDocument, PurchaseRecord
from restock.models.pruning import (
    PruneContext,
    PruneDecision,
    PruneReason,
    PruneReport,
    PruneSummary,
    PrunerConfig,
    UserOverride,
)
from restock.models.review import ReviewConfidence, ReviewPack, ReviewWarning
from restock.models.slots import DeliverySlot, ScoredSlot, SlotPreferences
from restock.models.substitution import (
    RankedSubstitute,
    SubstituteCandidate,
    SubstituteScore,
    SubstitutionResult,
)

__all__ = [
    "CartDiff",
    "CartItem",
    "CartSnapshot",
    "DiffSummary",
    "QuantityChange",
    "Enhancement",
    "EnhancedDecision",
    "EnhancementResult",
    "PurchaseHistoryDocument",
    "PurchaseRecord",
    "PruneContext",
    "PruneDecision",
    "PruneReason",
    "PruneReport",
    "PruneSummary",
    "PrunerConfig",
    "UserOverride",
    "ReviewConfidence",
    "ReviewPack",
    "ReviewWarning",
    "DeliverySlot",
    "ScoredSlot",
    "SlotPreferences",
    "RankedSubstitute",
    "SubstituteCandidate",
    "SubstituteScore",
    "SubstitutionResult",
]
