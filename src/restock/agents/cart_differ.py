"""Cart reconciliation agent."""

from __future__ import annotations

import logging
from typing import Dict, List

from restock.agents.base import Agent
from restock.models.cart import CartDiff, CartItem, CartSnapshot, DiffSummary, QuantityChange
from restock.normalize import normalize_name

logger = logging.getLogger(__name__)

QUANTITY_ADJUSTED = "quantity adjusted"


class CartDiffer(Agent[tuple[CartSnapshot, CartSnapshot], CartDiff]):
    """
    Compare a previous cart snapshot with a freshly built one.

    Lines are joined on their normalized name because product ids churn between scans.
    Every name appearing in either snapshot lands in exactly one of ``added``,
    ``removed``, ``quantity_changed`` or ``unchanged``; output order follows the current
    snapshot, then names only present in the previous one.
    """

    def run(self, payload: tuple[CartSnapshot, CartSnapshot]) -> CartDiff:
        previous, current = payload
        previous_index = self._index(previous.items)
        current_index = self._index(current.items)

        added: List[CartItem] = []
        removed: List[CartItem] = []
        changed: List[QuantityChange] = []
        unchanged: List[CartItem] = []

        for key, item in current_index.items():
            before = previous_index.get(key)
            if before is None:
                added.append(item)
            elif before.quantity != item.quantity:
                changed.append(
                    QuantityChange(
                        name=item.name,
                        previous_quantity=before.quantity,
                        new_quantity=item.quantity,
                        unit_price=item.unit_price,
                        reason=QUANTITY_ADJUSTED,
                    )
                )
            else:
                unchanged.append(item)

        for key, item in previous_index.items():
            if key not in current_index:
                removed.append(item)

        price_difference = round(
            sum(item.total_price for item in current.items)
            - sum(item.total_price for item in previous.items),
            2,
        )
        logger.info(
            "CartDiffer added=%s removed=%s changed=%s unchanged=%s delta=%.2f",
            len(added),
            len(removed),
            len(changed),
            len(unchanged),
            price_difference,
        )
        return CartDiff(
            added=added,
            removed=removed,
            quantity_changed=changed,
            unchanged=unchanged,
            summary=DiffSummary(
                added_count=len(added),
                removed_count=len(removed),
                changed_count=len(changed),
                unchanged_count=len(unchanged),
                price_difference=price_difference,
            ),
        )

    @staticmethod
    def _index(items: List[CartItem]) -> Dict[str, CartItem]:
        # Repeated names within one snapshot collapse into a single line.
        index: Dict[str, CartItem] = {}
        for item in items:
            key = normalize_name(item.name)
            existing = index.get(key)
            if existing is None:
                index[key] = item
                continue
            index[key] = existing.model_copy(
                update={
                    "quantity": existing.quantity + item.quantity,
                    "total_price": round(existing.total_price + item.total_price, 2),
                }
            )
        return index


def diff(previous: CartSnapshot, current: CartSnapshot) -> CartDiff:
    """Classify every cart line across two snapshots."""

    return CartDiffer().run((previous, current))


def has_changes(cart_diff: CartDiff) -> bool:
    summary = cart_diff.summary
    return bool(summary.added_count or summary.removed_count or summary.changed_count)


def requires_user_attention(cart_diff: CartDiff, price_threshold: float = 5.0) -> bool:
    """True when lines were dropped or the cart got notably more expensive."""

    return (
        cart_diff.summary.removed_count > 0
        or cart_diff.summary.price_difference > price_threshold
    )


def items_needing_substitution(snapshot: CartSnapshot) -> list[CartItem]:
    return [item for item in snapshot.items if not item.available or item.quantity == 0]


def describe_diff(cart_diff: CartDiff) -> str:
    summary = cart_diff.summary
    parts: list[str] = []
    if summary.added_count:
        parts.append(f"{summary.added_count} item(s) added")
    if summary.removed_count:
        parts.append(f"{summary.removed_count} item(s) removed")
    if summary.changed_count:
        parts.append(f"{summary.changed_count} quantity change(s)")
    if not parts:
        return "No changes detected"

    delta = summary.price_difference
    price_part = f" ({delta:+.2f} total)" if delta else ""
    return ", ".join(parts) + price_part


__all__ = [
    "CartDiffer",
    "QUANTITY_ADJUSTED",
    "diff",
    "has_changes",
    "requires_user_attention",
    "items_needing_substitution",
    "describe_diff",
]
