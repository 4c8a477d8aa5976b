"""Tests for the stock pruner agent."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from restock.agents.stock_pruner import (
    evaluate,
    find_item_history,
    learn_cadence,
    prune_confidence,
    purchase_analytics,
)
from restock.categories import ProductCategory
from restock.models.cart import CartItem, CartSnapshot
from restock.models.history import PurchaseRecord
from restock.models.pruning import PruneReason, PrunerConfig, UserOverride

REFERENCE = date(2025, 3, 15)


def build_cart(*names):
    return CartSnapshot.from_items(
        CartItem(name=name, quantity=1, unit_price=1.0, total_price=1.0) for name in names
    )


def build_history(name, *days_ago):
    return [
        PurchaseRecord(
            product_name=name,
            purchase_date=REFERENCE - timedelta(days=offset),
            order_id=f"{name}-{offset}",
        )
        for offset in days_ago
    ]


def test_recent_purchase_with_learned_cadence_is_recommended_for_removal(milk_history):
    report = evaluate(build_cart("Milk 1L"), milk_history, REFERENCE)

    assert len(report.recommended_removals) == 1
    decision = report.recommended_removals[0]
    assert decision.prune is True
    assert decision.reason_code is PruneReason.RECENTLY_PURCHASED
    assert decision.context.restock_cadence_days == 7
    assert decision.context.cadence_source == "learned"
    assert decision.context.days_since_last_purchase == 1
    assert decision.confidence == pytest.approx(1 - 1 / 7, abs=1e-4)
    assert decision.reason


def test_overdue_item_is_kept():
    history = build_history("Milk 1L", 14, 21, 28)

    report = evaluate(build_cart("Milk 1L"), history, REFERENCE)

    assert not report.recommended_removals
    keep = report.keep_items[0]
    assert keep.prune is False
    assert keep.reason_code is PruneReason.OVERDUE_RESTOCK
    assert keep.context.days_since_last_purchase == 14
    assert keep.confidence == pytest.approx(1.0)


def test_never_seen_item_is_uncertain_not_removed():
    report = evaluate(build_cart("Saffron threads"), [], REFERENCE)

    assert not report.recommended_removals
    assert not report.keep_items
    decision = report.uncertain_items[0]
    assert decision.reason_code is PruneReason.NO_HISTORY
    assert decision.confidence == pytest.approx(0.3)
    assert decision.prune is False
    assert report.warnings


def test_middle_band_is_uncertain():
    # Single purchase falls back to the dairy default of 8 days; 4/8 sits in the middle.
    history = build_history("Greek yogurt", 4)

    report = evaluate(build_cart("Greek yogurt"), history, REFERENCE)

    decision = report.uncertain_items[0]
    assert decision.reason_code is PruneReason.ADEQUATE_STOCK
    assert decision.context.cadence_source == "category-default"
    assert decision.context.category is ProductCategory.DAIRY


def test_conservative_mode_raises_threshold():
    # Five days into a learned 20-day cadence: confidence 0.75.
    history = build_history("Rice 1kg", 5, 25, 45)

    conservative = evaluate(build_cart("Rice 1kg"), history, REFERENCE)
    relaxed = evaluate(
        build_cart("Rice 1kg"), history, REFERENCE, {"conservative_mode": False}
    )

    assert not conservative.recommended_removals
    assert len(relaxed.recommended_removals) == 1


@pytest.mark.parametrize("cadence", [1, 5, 7, 30])
def test_confidence_is_monotonic_in_days(cadence):
    values = [prune_confidence(days, cadence) for days in range(0, cadence * 3)]

    assert all(0.0 <= value <= 1.0 for value in values)
    assert all(later <= earlier for earlier, later in zip(values, values[1:]))


def test_learn_cadence_uses_median_of_distinct_dates():
    dates = [date(2025, 1, 1), date(2025, 1, 1), date(2025, 1, 8), date(2025, 1, 20), date(2025, 1, 27)]

    assert learn_cadence(dates) == 7
    assert learn_cadence([date(2025, 1, 1)]) is None
    assert learn_cadence([date(2025, 1, 1), date(2025, 1, 1)]) is None


def test_find_item_history_matches_containment_and_skips_undated():
    history = [
        PurchaseRecord(product_name="Leite Mimosa 1L", purchase_date=date(2025, 1, 1), order_id="o-1"),
        PurchaseRecord(product_name="leite mimosa 1l", purchase_date=None, order_id="o-2"),
        PurchaseRecord(product_name="Pão", purchase_date=date(2025, 1, 1), order_id="o-3"),
    ]

    matches = find_item_history("Leite Mimosa", history)

    assert [record.order_id for record in matches] == ["o-1"]


def test_duplicate_cart_lines_are_flagged():
    report = evaluate(build_cart("Milk 1L", "milk 1l"), [], REFERENCE)

    codes = [decision.reason_code for decision in report.uncertain_items]
    assert PruneReason.DUPLICATE_IN_CART in codes


def test_user_overrides_take_precedence(milk_history):
    overrides = {
        "Milk 1L": UserOverride(product_name="Milk 1L", never_prune=True),
        "Paper towels": UserOverride(product_name="Paper towels", always_prune=True),
    }

    report = evaluate(build_cart("Milk 1L", "Paper towels"), milk_history, REFERENCE, overrides=overrides)

    assert [d.product_name for d in report.keep_items] == ["Milk 1L"]
    assert [d.product_name for d in report.recommended_removals] == ["Paper towels"]
    assert all(d.reason_code is PruneReason.USER_PREFERENCE for d in report.decisions)


def test_custom_cadence_override():
    history = build_history("Coffee beans", 10)
    overrides = {"coffee beans": UserOverride(product_name="Coffee beans", custom_cadence_days=60)}

    report = evaluate(build_cart("Coffee beans"), history, REFERENCE, overrides=overrides)

    decision = report.recommended_removals[0]
    assert decision.context.cadence_source == "user-override"
    assert decision.context.restock_cadence_days == 60


def test_summary_counts_every_item(milk_history):
    report = evaluate(build_cart("Milk 1L", "Saffron threads"), milk_history, REFERENCE)

    summary = report.summary
    assert summary.total_items == 2
    assert summary.recommended_removals + summary.keep_items + summary.uncertain_items == 2
    assert sum(summary.by_category.values()) == 2


@pytest.mark.parametrize(
    "config",
    [{"min_prune_confidence": 1.5}, {"min_purchases_for_learning": 1}, {"conservative_margin": -0.1}],
)
def test_invalid_config_fails_fast(config):
    with pytest.raises(ValidationError):
        evaluate(build_cart("Milk 1L"), [], REFERENCE, config)


def test_effective_threshold():
    assert PrunerConfig().effective_threshold == pytest.approx(0.8)
    assert PrunerConfig(conservative_mode=False).effective_threshold == pytest.approx(0.7)
    assert PrunerConfig(min_prune_confidence=0.95).effective_threshold == 1.0


def dated(day, quantity=1, name="Milk 1L"):
    return PurchaseRecord(product_name=name, purchase_date=day, order_id=f"o-{day.isoformat()}", quantity=quantity)


def test_purchase_analytics_summarizes_intervals_and_quantities():
    records = [
        dated(date(2025, 3, 1), 1),
        dated(date(2025, 3, 8), 2),
        dated(date(2025, 3, 15), 3),
        dated(date(2025, 3, 19), 2),
    ]

    analytics = purchase_analytics(records)

    assert analytics.purchase_count == 4
    assert analytics.first_purchase == date(2025, 3, 1)
    assert analytics.last_purchase == date(2025, 3, 19)
    assert analytics.mean_quantity == pytest.approx(2.0)
    assert analytics.mean_interval_days == pytest.approx(6.0)
    assert analytics.median_interval_days == pytest.approx(7.0)
    assert analytics.std_dev_interval_days == pytest.approx(2 ** 0.5)
    assert analytics.coefficient_of_variation == pytest.approx(2 ** 0.5 / 6)
    assert analytics.velocity_trend == "accelerating"
    assert analytics.as_dict()["first_purchase"] == "2025-03-01"


def test_purchase_analytics_with_little_data():
    single = purchase_analytics([dated(date(2025, 3, 1)), dated(date(2025, 3, 1), 3)])

    assert single.purchase_count == 1
    assert single.mean_quantity == pytest.approx(2.0)
    assert single.mean_interval_days is None
    assert single.velocity_trend == "unknown"
    assert purchase_analytics([PurchaseRecord(product_name="Milk 1L", order_id="o-1")]) is None
