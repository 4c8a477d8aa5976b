"""Parsing helpers for localized price, quantity, and size text."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

_CURRENCY_CHARS_RE = re.compile(r"[€$£+\s ]")
_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)*")
_QUANTITY_RE = re.compile(r"x?\s*(\d+)", re.IGNORECASE)
_SIZE_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(kg|g|ml|cl|l)\b", re.IGNORECASE)
_WORD_RE = re.compile(r"\w+")

# Sizes are compared in grams or millilitres.
_SIZE_FACTORS: dict[str, tuple[float, str]] = {
    "g": (1.0, "g"),
    "kg": (1000.0, "g"),
    "ml": (1.0, "ml"),
    "cl": (10.0, "ml"),
    "l": (1000.0, "ml"),
}


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Parse a localized price string into a float.

    Handles both decimal conventions: ``"1,39 €"`` and ``"€1.39"`` yield ``1.39``, and
    grouped thousands such as ``"1.234,56 €"`` yield ``1234.56``. Returns ``None`` when
    the text holds no number.
    """

    if not text:
        return None
    cleaned = _CURRENCY_CHARS_RE.sub("", text)
    match = _NUMBER_RE.search(cleaned)
    if not match:
        return None
    token = match.group(0)

    last_comma = token.rfind(",")
    last_dot = token.rfind(".")
    if last_comma > last_dot:
        token = token.replace(".", "").replace(",", ".")
    elif last_dot > last_comma and last_comma != -1:
        token = token.replace(",", "")
    try:
        return float(token)
    except ValueError:
        return None


def parse_quantity(text: Optional[str]) -> int:
    """Parse quantity labels such as ``"x2"``; never returns less than 1."""

    if not text:
        return 1
    match = _QUANTITY_RE.search(text.strip())
    if not match:
        return 1
    value = int(match.group(1))
    return value if value > 0 else 1


def parse_size(text: Optional[str]) -> Optional[tuple[float, str]]:
    """Return ``(value, base_unit)`` with kg/l/cl folded into g/ml."""

    if not text:
        return None
    match = _SIZE_RE.search(text)
    if not match:
        return None
    value = float(match.group(1).replace(",", "."))
    factor, base_unit = _SIZE_FACTORS[match.group(2).lower()]
    return value * factor, base_unit


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_name(value: str) -> str:
    """Normalize free-text product names for comparison."""

    return " ".join(strip_accents(value).lower().split())


def name_tokens(value: str) -> set[str]:
    """Case-folded name tokens longer than two characters."""

    return {token for token in _WORD_RE.findall(value.casefold()) if len(token) > 2}


__all__ = [
    "parse_price",
    "parse_quantity",
    "parse_size",
    "strip_accents",
    "normalize_name",
    "name_tokens",
]
