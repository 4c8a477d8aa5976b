"""Tests for purchase history merging and sync."""

from __future__ import annotations

from datetime import date, datetime, timezone

from restock.history.store import merge, sync, unsynced_order_ids
from restock.models.history import PurchaseHistoryDocument, PurchaseRecord


def build_record(name, order_id, purchase_date, quantity=1):
    return PurchaseRecord(
        product_name=name,
        order_id=order_id,
        purchase_date=purchase_date,
        quantity=quantity,
    )


def test_merge_deduplicates_on_order_and_name_first_wins():
    existing = [build_record("Milk 1L", "o-1", date(2025, 1, 1), quantity=1)]
    incoming = [
        build_record("Milk 1L", "o-1", date(2025, 1, 1), quantity=5),
        build_record("Bread", "o-1", date(2025, 1, 1)),
    ]

    records, synced = merge(existing, ["o-1"], incoming, ["o-1"])

    assert [record.product_name for record in records] == ["Milk 1L", "Bread"]
    milk = next(record for record in records if record.product_name == "Milk 1L")
    assert milk.quantity == 1
    assert synced == ["o-1"]


def test_merge_sorts_by_date_then_order_id_descending():
    records, _ = merge(
        [],
        [],
        [
            build_record("A", "o-1", date(2025, 1, 1)),
            build_record("B", "o-3", date(2025, 2, 1)),
            build_record("C", "o-2", date(2025, 2, 1)),
        ],
        [],
    )

    assert [(record.order_id, record.product_name) for record in records] == [
        ("o-3", "B"),
        ("o-2", "C"),
        ("o-1", "A"),
    ]


def test_merge_treats_invalid_dates_as_earliest():
    undated = PurchaseRecord.model_validate(
        {"productName": "Mystery", "orderId": "o-9", "purchaseDate": "not-a-date"}
    )
    dated = build_record("Known", "o-1", date(2020, 1, 1))

    records, _ = merge([undated], [], [dated], [])

    assert undated.purchase_date is None
    assert [record.product_name for record in records] == ["Known", "Mystery"]


def test_merge_is_idempotent():
    existing = [
        build_record("Milk 1L", "o-1", date(2025, 1, 1)),
        build_record("Eggs", "o-2", date(2025, 1, 8)),
    ]
    incoming = [
        build_record("Milk 1L", "o-3", date(2025, 1, 15)),
        build_record("Eggs", "o-2", date(2025, 1, 8)),
    ]

    once = merge(existing, ["o-1", "o-2"], incoming, ["o-3"])
    twice = merge(once[0], once[1], once[0], once[1])

    assert twice == once


def test_merge_output_independent_of_argument_order():
    left = [build_record("Milk 1L", "o-1", date(2025, 1, 1))]
    right = [build_record("Eggs", "o-2", date(2025, 1, 8))]

    assert merge(left, ["o-1"], right, ["o-2"]) == merge(right, ["o-2"], left, ["o-1"])


def test_unsynced_order_ids_preserves_order_and_skips_known():
    assert unsynced_order_ids(["o-3", "o-1", "o-2", "o-3"], ["o-1"]) == ["o-3", "o-2"]


def test_sync_only_appends_records_from_new_orders():
    document = PurchaseHistoryDocument(
        records=[build_record("Milk 1L", "o-1", date(2025, 1, 1))],
        synced_order_ids=["o-1"],
        orders_count=1,
    )
    new_records = [
        build_record("Milk 1L", "o-1", date(2025, 1, 1), quantity=9),
        build_record("Eggs", "o-2", date(2025, 1, 8)),
    ]
    now = datetime(2025, 1, 9, tzinfo=timezone.utc)

    updated = sync(document, new_records, ["o-1", "o-2"], now=now)

    assert [record.product_name for record in updated.records] == ["Eggs", "Milk 1L"]
    assert updated.records[1].quantity == 1
    assert updated.synced_order_ids == ["o-1", "o-2"]
    assert updated.orders_count == 2
    assert updated.last_synced_at == now
    assert document.synced_order_ids == ["o-1"]
