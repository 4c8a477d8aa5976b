"""Cart snapshot and cart diff models."""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartItem(BaseModel):
    """Single line of a scanned cart."""

    product_id: Optional[str] = Field(default=None, alias="productId")
    name: str = Field(min_length=1)
    quantity: int = Field(ge=0)
    unit_price: float = Field(default=0.0, ge=0, alias="unitPrice")
    total_price: float = Field(default=0.0, ge=0, alias="totalPrice")
    available: bool = Field(default=True)
    availability_note: Optional[str] = Field(default=None, alias="availabilityNote")
    brand: Optional[str] = Field(default=None)
    size: Optional[str] = Field(default=None)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CartSnapshot(BaseModel):
    """Cart contents captured at one point in time."""

    items: list[CartItem] = Field(default_factory=list)
    item_count: int = Field(default=0, ge=0, alias="itemCount")
    total_price: float = Field(default=0.0, ge=0, alias="totalPrice")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def from_items(cls, items: Iterable[CartItem]) -> "CartSnapshot":
        """Build a snapshot deriving count and total from the supplied lines."""

        collected = list(items)
        total = round(sum(item.total_price for item in collected), 2)
        return cls(items=collected, item_count=len(collected), total_price=total)


class QuantityChange(BaseModel):
    """Line present in both snapshots with a different quantity."""

    name: str
    previous_quantity: int = Field(ge=0, alias="previousQuantity")
    new_quantity: int = Field(ge=0, alias="newQuantity")
    unit_price: float = Field(ge=0, alias="unitPrice")
    reason: str

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class DiffSummary(BaseModel):
    """Counts and signed price delta for a cart diff."""

    added_count: int = Field(default=0, ge=0, alias="addedCount")
    removed_count: int = Field(default=0, ge=0, alias="removedCount")
    changed_count: int = Field(default=0, ge=0, alias="changedCount")
    unchanged_count: int = Field(default=0, ge=0, alias="unchangedCount")
    price_difference: float = Field(default=0.0, alias="priceDifference")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CartDiff(BaseModel):
    """Classification of every line across two cart snapshots."""

    added: list[CartItem] = Field(default_factory=list)
    removed: list[CartItem] = Field(default_factory=list)
    quantity_changed: list[QuantityChange] = Field(
        default_factory=list, alias="quantityChanged"
    )
    unchanged: list[CartItem] = Field(default_factory=list)
    summary: DiffSummary = Field(default_factory=DiffSummary)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


__all__ = ["CartItem", "CartSnapshot", "QuantityChange", "DiffSummary", "CartDiff"]
