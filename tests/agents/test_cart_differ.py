"""Tests for the cart diff agent."""

from __future__ import annotations

from restock.agents.cart_differ import (
    QUANTITY_ADJUSTED,
    describe_diff,
    diff,
    has_changes,
    items_needing_substitution,
    requires_user_attention,
)
from restock.models.cart import CartItem, CartSnapshot


def build_item(name, quantity=1, unit_price=1.0, available=True):
    return CartItem(
        name=name,
        quantity=quantity,
        unit_price=unit_price,
        total_price=round(quantity * unit_price, 2),
        available=available,
    )


def build_snapshot(*items):
    return CartSnapshot.from_items(items)


def test_classifies_every_line():
    previous = build_snapshot(
        build_item("Milk 1L", 2, 0.89),
        build_item("Bread", 1, 1.2),
        build_item("Eggs", 12, 0.25),
    )
    current = build_snapshot(
        build_item("milk 1l", 3, 0.89),
        build_item("Eggs", 12, 0.25),
        build_item("Coffee", 1, 4.5),
    )

    result = diff(previous, current)

    assert [item.name for item in result.added] == ["Coffee"]
    assert [item.name for item in result.removed] == ["Bread"]
    assert [item.name for item in result.unchanged] == ["Eggs"]
    change = result.quantity_changed[0]
    assert (change.name, change.previous_quantity, change.new_quantity) == ("milk 1l", 2, 3)
    assert change.reason == QUANTITY_ADJUSTED
    assert result.summary.price_difference == round(current.total_price - previous.total_price, 2)
    assert result.summary.added_count == 1
    assert result.summary.removed_count == 1
    assert result.summary.changed_count == 1
    assert result.summary.unchanged_count == 1


def test_every_name_lands_in_exactly_one_bucket():
    previous = build_snapshot(build_item("A"), build_item("B", 2), build_item("C"))
    current = build_snapshot(build_item("B", 3), build_item("C"), build_item("D"))

    result = diff(previous, current)
    buckets = [
        {item.name for item in result.added},
        {item.name for item in result.removed},
        {change.name for change in result.quantity_changed},
        {item.name for item in result.unchanged},
    ]

    names = {"A", "B", "C", "D"}
    for name in names:
        assert sum(name in bucket for bucket in buckets) == 1
    assert set().union(*buckets) == names


def test_diff_is_deterministic():
    previous = build_snapshot(build_item("Milk 1L", 2), build_item("Bread"))
    current = build_snapshot(build_item("Bread", 2), build_item("Apples", 6, 0.3))

    first = diff(previous, current).model_dump_json()
    second = diff(previous, current).model_dump_json()

    assert first == second


def test_duplicate_names_are_combined():
    previous = build_snapshot(build_item("Yogurt", 2))
    current = build_snapshot(build_item("Yogurt", 1), build_item("yogurt", 1))

    result = diff(previous, current)

    assert not result.quantity_changed
    assert [item.name for item in result.unchanged] == ["Yogurt"]


def test_empty_snapshots_produce_empty_diff():
    result = diff(CartSnapshot(), CartSnapshot())

    assert not has_changes(result)
    assert describe_diff(result) == "No changes detected"


def test_attention_and_description():
    previous = build_snapshot(build_item("Milk 1L", 1, 1.0))
    current = build_snapshot(build_item("Milk 1L", 1, 1.0), build_item("Wine", 1, 9.0))

    result = diff(previous, current)

    assert has_changes(result)
    assert requires_user_attention(result, price_threshold=5.0)
    assert not requires_user_attention(result, price_threshold=10.0)
    assert describe_diff(result) == "1 item(s) added (+9.00 total)"


def test_items_needing_substitution():
    snapshot = build_snapshot(
        build_item("Milk 1L"),
        build_item("Butter 250g", available=False),
        build_item("Flour", quantity=0),
    )

    assert [item.name for item in items_needing_substitution(snapshot)] == ["Butter 250g", "Flour"]
