"""Merge and deduplicate purchase records synced from order history."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from restock.models.history import PurchaseHistoryDocument, PurchaseRecord

logger = logging.getLogger(__name__)


def _sort_key(record: PurchaseRecord) -> tuple[int, str]:
    # Missing dates order as the earliest possible purchase.
    purchase_date = record.purchase_date or date.min
    return purchase_date.toordinal(), record.order_id


def merge(
    existing_records: Iterable[PurchaseRecord],
    existing_synced_order_ids: Iterable[str],
    new_records: Iterable[PurchaseRecord],
    new_synced_order_ids: Iterable[str],
) -> tuple[list[PurchaseRecord], list[str]]:
    """
    Combine stored and freshly synced purchase records.

    Records are deduplicated on ``order_id|product_name`` with the first occurrence
    winning, then ordered newest purchase first (order id descending on ties) so the
    output does not depend on the order the two inputs were merged in. Synced order ids
    are unioned and returned sorted. Merging a result with itself is a no-op.
    """

    seen: set[str] = set()
    merged: list[PurchaseRecord] = []
    skipped = 0
    for record in [*existing_records, *new_records]:
        key = record.dedup_key
        if key in seen:
            skipped += 1
            continue
        seen.add(key)
        merged.append(record)

    merged.sort(key=_sort_key, reverse=True)
    synced = sorted(set(existing_synced_order_ids) | set(new_synced_order_ids))
    if skipped:
        logger.debug("History merge dropped %s duplicate record(s)", skipped)
    return merged, synced


def unsynced_order_ids(order_ids: Iterable[str], synced_order_ids: Iterable[str]) -> list[str]:
    """Return order ids not yet present in the synced set, preserving input order."""

    already = set(synced_order_ids)
    pending: list[str] = []
    for order_id in order_ids:
        if order_id not in already:
            already.add(order_id)
            pending.append(order_id)
    return pending


def sync(
    document: PurchaseHistoryDocument,
    new_records: Sequence[PurchaseRecord],
    new_order_ids: Sequence[str],
    *,
    now: Optional[datetime] = None,
) -> PurchaseHistoryDocument:
    """
    Fold newly extracted orders into a history document.

    Only records whose order id is not already synced are appended; the returned
    document is a new value and ``document`` is left untouched.
    """

    pending = set(unsynced_order_ids(new_order_ids, document.synced_order_ids))
    fresh = [record for record in new_records if record.order_id in pending]
    records, synced = merge(document.records, document.synced_order_ids, fresh, pending)
    logger.info(
        "History sync appended %s record(s) from %s new order(s)",
        len(records) - len(document.records),
        len(pending),
    )
    return PurchaseHistoryDocument(
        records=records,
        last_synced_at=now or datetime.now().astimezone(),
        orders_count=len(synced),
        synced_order_ids=synced,
    )


__all__ = ["merge", "unsynced_order_ids", "sync"]
