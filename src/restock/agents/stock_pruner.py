"""Consumption-cadence pruning agent."""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from restock.agents.base import Agent
from restock.categories import ProductCategory, default_cadence, detect_category
from restock.metrics import PRUNE_DECISIONS
from restock.models.cart import CartItem, CartSnapshot
from restock.models.history import PurchaseRecord
from restock.models.pruning import (
    CadenceSource,
    PruneContext,
    PruneDecision,
    PruneReason,
    PruneReport,
    PruneSummary,
    PrunerConfig,
    UserOverride,
)
from restock.normalize import normalize_name

logger = logging.getLogger(__name__)

NO_HISTORY_CONFIDENCE = 0.3
DUPLICATE_CONFIDENCE = 0.5
MIN_CADENCE_DAYS = 1
MAX_CADENCE_DAYS = 180
TREND_TOLERANCE = 0.2


@dataclass(frozen=True)
class PruneRequest:
    cart: CartSnapshot
    history: Sequence[PurchaseRecord]
    reference_date: date
    config: PrunerConfig = field(default_factory=PrunerConfig)
    overrides: Mapping[str, UserOverride] = field(default_factory=dict)


@dataclass(frozen=True)
class Cadence:
    days: int
    source: CadenceSource


def prune_confidence(days_since_last_purchase: int, cadence_days: int) -> float:
    """Confidence that an item is still stocked: ``clamp(1 - days/cadence, 0, 1)``."""

    ratio = days_since_last_purchase / max(cadence_days, MIN_CADENCE_DAYS)
    return min(1.0, max(0.0, 1.0 - ratio))


def learn_cadence(purchase_dates: Iterable[date], min_purchases: int = 2) -> Optional[int]:
    """Median interval between distinct purchase dates, or None with too little data."""

    distinct = sorted(set(purchase_dates))
    if len(distinct) < min_purchases:
        return None
    intervals = [(later - earlier).days for earlier, later in zip(distinct, distinct[1:])]
    if not intervals:
        return None
    median = statistics.median(intervals)
    return max(MIN_CADENCE_DAYS, min(MAX_CADENCE_DAYS, round(median)))


@dataclass(frozen=True)
class PurchaseAnalytics:
    """Interval and quantity statistics for one product's purchase history."""

    purchase_count: int
    first_purchase: date
    last_purchase: date
    mean_quantity: float
    mean_interval_days: Optional[float] = None
    median_interval_days: Optional[float] = None
    std_dev_interval_days: Optional[float] = None
    coefficient_of_variation: Optional[float] = None
    velocity_trend: str = "unknown"

    def as_dict(self) -> Dict[str, object]:
        return {
            "purchase_count": self.purchase_count,
            "first_purchase": self.first_purchase.isoformat(),
            "last_purchase": self.last_purchase.isoformat(),
            "mean_quantity": round(self.mean_quantity, 2),
            "mean_interval_days": _rounded(self.mean_interval_days),
            "median_interval_days": _rounded(self.median_interval_days),
            "std_dev_interval_days": _rounded(self.std_dev_interval_days),
            "coefficient_of_variation": _rounded(self.coefficient_of_variation),
            "velocity_trend": self.velocity_trend,
        }


def _rounded(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


def _velocity_trend(intervals: Sequence[int], mean: float) -> str:
    # Latest gap against the historical mean; within 20% counts as stable.
    if len(intervals) < 2 or mean <= 0:
        return "unknown"
    delta = (intervals[-1] - mean) / mean
    if delta <= -TREND_TOLERANCE:
        return "accelerating"
    if delta >= TREND_TOLERANCE:
        return "decelerating"
    return "stable"


def purchase_analytics(records: Iterable[PurchaseRecord]) -> Optional[PurchaseAnalytics]:
    """Summarize dated purchases of one product; None when nothing is dated."""

    dated = [record for record in records if record.purchase_date is not None]
    if not dated:
        return None
    distinct = sorted({record.purchase_date for record in dated})
    intervals = [(later - earlier).days for earlier, later in zip(distinct, distinct[1:])]
    analytics = PurchaseAnalytics(
        purchase_count=len(distinct),
        first_purchase=distinct[0],
        last_purchase=distinct[-1],
        mean_quantity=statistics.fmean(record.quantity for record in dated),
    )
    if not intervals:
        return analytics

    mean = statistics.fmean(intervals)
    spread = statistics.pstdev(intervals)
    return replace(
        analytics,
        mean_interval_days=mean,
        median_interval_days=float(statistics.median(intervals)),
        std_dev_interval_days=spread,
        coefficient_of_variation=spread / mean if mean > 0 else 0.0,
        velocity_trend=_velocity_trend(intervals, mean),
    )


def find_item_history(item_name: str, history: Sequence[PurchaseRecord]) -> List[PurchaseRecord]:
    """Dated records whose normalized name equals or contains the item name (or vice versa)."""

    target = normalize_name(item_name)
    matches: List[PurchaseRecord] = []
    for record in history:
        if record.purchase_date is None:
            continue
        candidate = normalize_name(record.product_name)
        if candidate == target:
            matches.append(record)
            continue
        shorter = min(candidate, target, key=len)
        if len(shorter) >= 3 and (candidate in target or target in candidate):
            matches.append(record)
    return matches


class StockPruner(Agent[PruneRequest, PruneReport]):
    """
    Decide, per cart item, whether it is probably still in stock at home.

    Items are bucketed into recommended removals, keeps, and uncertain items. Anything
    without purchase evidence is uncertain, never a removal: the household must not lose
    an item it still needs, while keeping an unneeded one is an acceptable miss.
    """

    def run(self, payload: PruneRequest) -> PruneReport:
        config = payload.config
        threshold = config.effective_threshold
        overrides = {normalize_name(name): value for name, value in payload.overrides.items()}

        removals: List[tuple[PruneDecision, float]] = []
        keeps: List[PruneDecision] = []
        uncertain: List[PruneDecision] = []
        seen: set[str] = set()
        missing_history = 0

        for item in payload.cart.items:
            key = normalize_name(item.name)
            if key in seen:
                uncertain.append(self._duplicate_decision(item))
                continue
            seen.add(key)

            override = overrides.get(key)
            if override is not None and (override.never_prune or override.always_prune):
                decision = self._override_decision(item, override)
                if decision.prune:
                    removals.append((decision, 0.0))
                else:
                    keeps.append(decision)
                continue

            records = find_item_history(item.name, payload.history)
            category = detect_category(item.name).category
            if not records:
                missing_history += 1
                uncertain.append(self._no_history_decision(item, category))
                continue

            last_purchase = max(record.purchase_date for record in records)  # type: ignore[type-var]
            days_since = max(0, (payload.reference_date - last_purchase).days)
            cadence = self._cadence(records, category, config, override)
            confidence = prune_confidence(days_since, cadence.days)
            context = PruneContext(
                days_since_last_purchase=days_since,
                category=category,
                restock_cadence_days=cadence.days,
                cadence_source=cadence.source,
                urgency_ratio=round(days_since / cadence.days, 4),
                last_purchase_date=last_purchase,
            )

            if confidence >= threshold:
                decision = self._decision(
                    item, True, confidence, PruneReason.RECENTLY_PURCHASED, context
                )
                removals.append((decision, float(days_since)))
            elif (1.0 - confidence) >= threshold:
                reason = (
                    PruneReason.OVERDUE_RESTOCK
                    if days_since >= cadence.days
                    else PruneReason.APPROACHING_RESTOCK
                )
                keeps.append(self._decision(item, False, 1.0 - confidence, reason, context))
            else:
                uncertain.append(
                    self._decision(
                        item,
                        False,
                        max(confidence, 1.0 - confidence),
                        PruneReason.ADEQUATE_STOCK,
                        context,
                    )
                )

        removals.sort(key=lambda entry: (-entry[0].confidence, -entry[1]))
        recommended = [decision for decision, _ in removals]

        warnings: List[str] = []
        if not payload.history:
            warnings.append("No purchase history available; every item needs manual review.")
        elif missing_history:
            warnings.append(f"{missing_history} cart item(s) have no purchase history.")

        for bucket, decisions in (
            ("removal", recommended),
            ("keep", keeps),
            ("uncertain", uncertain),
        ):
            if decisions:
                PRUNE_DECISIONS.labels(bucket=bucket).inc(len(decisions))

        logger.info(
            "StockPruner items=%s removals=%s keeps=%s uncertain=%s threshold=%.2f",
            len(payload.cart.items),
            len(recommended),
            len(keeps),
            len(uncertain),
            threshold,
        )
        return PruneReport(
            recommended_removals=recommended,
            uncertain_items=uncertain,
            keep_items=keeps,
            summary=self._summarize(recommended, keeps, uncertain),
            warnings=warnings,
        )

    def _cadence(
        self,
        records: Sequence[PurchaseRecord],
        category: ProductCategory,
        config: PrunerConfig,
        override: Optional[UserOverride],
    ) -> Cadence:
        if override is not None and override.custom_cadence_days:
            return Cadence(override.custom_cadence_days, "user-override")
        if config.use_learned_cadences:
            learned = learn_cadence(
                (record.purchase_date for record in records if record.purchase_date),
                config.min_purchases_for_learning,
            )
            if learned is not None:
                return Cadence(learned, "learned")
        return Cadence(default_cadence(category), "category-default")

    def _decision(
        self,
        item: CartItem,
        prune: bool,
        confidence: float,
        reason_code: PruneReason,
        context: PruneContext,
    ) -> PruneDecision:
        return PruneDecision(
            product_id=item.product_id,
            product_name=item.name,
            prune=prune,
            confidence=round(confidence, 4),
            reason=describe_reason(reason_code, context),
            reason_code=reason_code,
            context=context,
        )

    def _no_history_decision(self, item: CartItem, category: ProductCategory) -> PruneDecision:
        context = PruneContext(
            category=category,
            restock_cadence_days=default_cadence(category),
            cadence_source="no-history",
        )
        return self._decision(item, False, NO_HISTORY_CONFIDENCE, PruneReason.NO_HISTORY, context)

    def _duplicate_decision(self, item: CartItem) -> PruneDecision:
        category = detect_category(item.name).category
        context = PruneContext(
            category=category,
            restock_cadence_days=default_cadence(category),
            cadence_source="no-history",
        )
        return self._decision(
            item, False, DUPLICATE_CONFIDENCE, PruneReason.DUPLICATE_IN_CART, context
        )

    def _override_decision(self, item: CartItem, override: UserOverride) -> PruneDecision:
        category = detect_category(item.name).category
        context = PruneContext(
            category=category,
            restock_cadence_days=override.custom_cadence_days or default_cadence(category),
            cadence_source="user-override",
        )
        return PruneDecision(
            product_id=item.product_id,
            product_name=item.name,
            prune=override.always_prune and not override.never_prune,
            confidence=1.0,
            reason=(
                "Household preference: never remove this item."
                if override.never_prune
                else "Household preference: always remove this item."
            ),
            reason_code=PruneReason.USER_PREFERENCE,
            context=context,
        )

    @staticmethod
    def _summarize(
        removals: List[PruneDecision],
        keeps: List[PruneDecision],
        uncertain: List[PruneDecision],
    ) -> PruneSummary:
        everything = [*removals, *keeps, *uncertain]
        by_category: Dict[str, int] = {}
        for decision in everything:
            name = decision.context.category.value
            by_category[name] = by_category.get(name, 0) + 1
        average = (
            round(sum(d.confidence for d in everything) / len(everything), 4) if everything else 0.0
        )
        return PruneSummary(
            total_items=len(everything),
            recommended_removals=len(removals),
            keep_items=len(keeps),
            uncertain_items=len(uncertain),
            average_confidence=average,
            by_category=dict(sorted(by_category.items())),
        )


def describe_reason(reason_code: PruneReason, context: PruneContext) -> str:
    days = context.days_since_last_purchase
    cadence = context.restock_cadence_days
    remaining = cadence - days if days is not None else None

    if reason_code is PruneReason.RECENTLY_PURCHASED:
        return (
            f"Purchased {days} days ago. Typical restock every {cadence} days. "
            f"About {remaining} days of stock remaining."
        )
    if reason_code is PruneReason.OVERDUE_RESTOCK:
        return f"Due for restock. Last purchased {days} days ago ({cadence}-day cycle)."
    if reason_code is PruneReason.APPROACHING_RESTOCK:
        return f"Approaching restock time. About {remaining} days remaining of a {cadence}-day cycle."
    if reason_code is PruneReason.ADEQUATE_STOCK:
        return (
            f"Stock may still be adequate. Last purchased {days} days ago with a "
            f"{cadence}-day cycle; needs review."
        )
    if reason_code is PruneReason.NO_HISTORY:
        return "No purchase history found. Keep unless you know it is stocked."
    if reason_code is PruneReason.DUPLICATE_IN_CART:
        return "Duplicate item in cart."
    return "Household preference."


def evaluate(
    cart: CartSnapshot,
    history: Sequence[PurchaseRecord],
    reference_date: date,
    config: Union[PrunerConfig, Mapping[str, object], None] = None,
    overrides: Optional[Mapping[str, UserOverride]] = None,
) -> PruneReport:
    """
    Bucket cart items into removals, keeps, and uncertain items.

    ``config`` may be a mapping; out-of-range values raise ``pydantic.ValidationError``
    (a ``ValueError``) before any decision is computed.
    """

    if config is None:
        resolved = PrunerConfig()
    elif isinstance(config, PrunerConfig):
        resolved = config
    else:
        resolved = PrunerConfig.model_validate(dict(config))
    request = PruneRequest(
        cart=cart,
        history=list(history),
        reference_date=reference_date,
        config=resolved,
        overrides=dict(overrides or {}),
    )
    return StockPruner().run(request)


__all__ = [
    "PruneRequest",
    "StockPruner",
    "prune_confidence",
    "learn_cadence",
    "PurchaseAnalytics",
    "purchase_analytics",
    "find_item_history",
    "describe_reason",
    "evaluate",
]
