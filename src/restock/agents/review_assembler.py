"""Fold one session's outputs into a Review Pack."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from restock.agents.base import Agent
from restock.metrics import REVIEW_PACKS
from restock.models.cart import CartDiff, CartSnapshot
from restock.models.enhancement import EnhancementResult
from restock.models.pruning import PruneDecision, PruneReason, PruneReport
from restock.models.review import ReviewCart, ReviewConfidence, ReviewPack, ReviewWarning
from restock.models.slots import ScoredSlot
from restock.models.substitution import SubstitutionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssemblyRequest:
    previous: CartSnapshot
    current: CartSnapshot
    diff: CartDiff
    pruning: PruneReport
    substitutions: Sequence[SubstitutionResult] = ()
    slots: Sequence[ScoredSlot] = ()
    prune_enhancement: Optional[EnhancementResult[PruneDecision]] = None
    substitution_enhancement: Optional[EnhancementResult[SubstitutionResult]] = None
    price_threshold: float = 5.0
    household_id: str = "default"
    session_id: Optional[str] = None
    generated_at: Optional[datetime] = None
    extra_warnings: Sequence[ReviewWarning] = field(default_factory=tuple)


def _ratio(numerator: float, denominator: float, empty: float = 1.0) -> float:
    if denominator <= 0:
        return empty
    return round(min(1.0, max(0.0, numerator / denominator)), 4)


def build_warnings(request: AssemblyRequest) -> List[ReviewWarning]:
    warnings: List[ReviewWarning] = []
    substituted = {result.original_item.name for result in request.substitutions if result.has_substitutes}

    for item in request.current.items:
        if item.available and item.quantity > 0:
            continue
        if item.name in substituted:
            warnings.append(
                ReviewWarning(
                    type="out_of_stock",
                    message=f"{item.name} is unavailable; substitutes suggested.",
                    severity="info",
                    item_name=item.name,
                )
            )
        else:
            warnings.append(
                ReviewWarning(
                    type="out_of_stock",
                    message=f"{item.name} is unavailable and no substitute was found.",
                    severity="warning",
                    item_name=item.name,
                )
            )

    for item in request.diff.removed:
        warnings.append(
            ReviewWarning(
                type="missing_item",
                message=f"{item.name} was in the previous cart but is missing now.",
                severity="info",
                item_name=item.name,
            )
        )

    delta = request.diff.summary.price_difference
    if abs(delta) > request.price_threshold:
        direction = "increased" if delta > 0 else "decreased"
        warnings.append(
            ReviewWarning(
                type="price_change",
                message=f"Cart total {direction} by {abs(delta):.2f}.",
                severity="warning" if delta > 0 else "info",
            )
        )

    for message in request.pruning.warnings:
        warnings.append(ReviewWarning(type="data_quality", message=message, severity="warning"))

    for enhancement in (request.prune_enhancement, request.substitution_enhancement):
        if enhancement is None:
            continue
        for name in enhancement.flagged_items:
            warnings.append(
                ReviewWarning(
                    type="data_quality",
                    message=f"LLM suggestion for {name} was discarded by a safety check.",
                    severity="info",
                    item_name=name,
                )
            )

    warnings.extend(request.extra_warnings)
    return warnings


def build_confidence(request: AssemblyRequest) -> ReviewConfidence:
    items = request.current.items
    available = sum(1 for item in items if item.available)

    decisions = request.pruning.decisions
    with_history = sum(1 for d in decisions if d.reason_code is not PruneReason.NO_HISTORY)

    substitution_scores = [
        result.best.score.overall if result.best is not None else 0.0
        for result in request.substitutions
    ]

    return ReviewConfidence(
        cart_accuracy=_ratio(available, len(items)),
        data_quality=_ratio(with_history, len(decisions)),
        pruning=round(request.pruning.summary.average_confidence, 4),
        substitution=_ratio(sum(substitution_scores), len(substitution_scores)),
    )


class ReviewAssembler(Agent[AssemblyRequest, ReviewPack]):
    """Build the immutable pack handed to whichever renderer displays it."""

    def run(self, payload: AssemblyRequest) -> ReviewPack:
        pack = ReviewPack(
            session_id=payload.session_id or uuid.uuid4().hex,
            household_id=payload.household_id,
            generated_at=payload.generated_at or datetime.now(timezone.utc),
            cart=ReviewCart(before=payload.previous, after=payload.current, diff=payload.diff),
            pruning=payload.pruning,
            substitutions=list(payload.substitutions),
            slots=list(payload.slots),
            prune_enhancement=payload.prune_enhancement,
            substitution_enhancement=payload.substitution_enhancement,
            warnings=build_warnings(payload),
            confidence=build_confidence(payload),
        )
        REVIEW_PACKS.inc()
        logger.info(
            "ReviewAssembler session=%s warnings=%s removals=%s substitutions=%s",
            pack.session_id,
            len(pack.warnings),
            len(pack.pruning.recommended_removals),
            len(pack.substitutions),
        )
        return pack


__all__ = ["AssemblyRequest", "ReviewAssembler", "build_warnings", "build_confidence"]
