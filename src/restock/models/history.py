"""Purchase history models and the persisted history document."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PurchaseRecord(BaseModel):
    """One product line from a past order."""

    product_id: Optional[str] = Field(default=None, alias="productId")
    product_name: str = Field(min_length=1, alias="productName")
    purchase_date: Optional[date] = Field(default=None, alias="purchaseDate")
    quantity: int = Field(default=1, ge=0)
    order_id: str = Field(min_length=1, alias="orderId")
    unit_price: Optional[float] = Field(default=None, ge=0, alias="unitPrice")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("purchase_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Optional[date]:
        # Unparseable dates are kept as None and sort as the earliest purchase.
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            except ValueError:
                pass
            try:
                return date.fromisoformat(text[:10])
            except ValueError:
                return None
        return None

    @property
    def dedup_key(self) -> str:
        return f"{self.order_id}|{self.product_name}"


class PurchaseHistoryDocument(BaseModel):
    """Persisted purchase history, rewritten wholesale after each sync."""

    records: list[PurchaseRecord] = Field(default_factory=list)
    last_synced_at: Optional[datetime] = Field(default=None, alias="lastSyncedAt")
    orders_count: int = Field(default=0, ge=0, alias="ordersCount")
    synced_order_ids: list[str] = Field(default_factory=list, alias="syncedOrderIds")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


__all__ = ["PurchaseRecord", "PurchaseHistoryDocument"]
