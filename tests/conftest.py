"""Shared pytest fixtures for the restock test suite."""

from __future__ import annotations

from datetime import date, timedelta
from typing import List

import pytest

from restock.config import get_settings
from restock.models.cart import CartItem, CartSnapshot
from restock.models.history import PurchaseRecord

REFERENCE_DATE = date(2025, 3, 15)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a per-test history file and ignore any local .env."""

    monkeypatch.chdir(tmp_path)
    for key in ("RESTOCK_LLM_ENABLED", "RESTOCK_LLM_BASE_URL", "RESTOCK_LLM_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("RESTOCK_HISTORY_PATH", str(tmp_path / "purchase_history.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture()
def milk_history() -> List[PurchaseRecord]:
    """Milk bought every seven days, most recently the day before the reference date."""

    return [
        PurchaseRecord(
            product_name="Milk 1L",
            purchase_date=REFERENCE_DATE - timedelta(days=offset),
            order_id=f"order-{offset}",
            quantity=2,
            unit_price=0.89,
        )
        for offset in (1, 8, 15)
    ]


@pytest.fixture()
def sample_cart() -> CartSnapshot:
    return CartSnapshot.from_items(
        [
            CartItem(product_id="p-milk", name="Milk 1L", quantity=2, unit_price=0.89, total_price=1.78),
            CartItem(
                product_id="p-butter",
                name="Butter 250g",
                quantity=1,
                unit_price=2.0,
                total_price=2.0,
                available=False,
                brand="Brand X",
                size="250g",
            ),
            CartItem(product_id="p-saffron", name="Saffron threads", quantity=1, unit_price=6.5, total_price=6.5),
        ]
    )
