"""Tests for keyword-based category detection."""

from __future__ import annotations

import pytest

from restock.categories import ProductCategory, default_cadence, detect_category


@pytest.mark.parametrize(
    "name, category",
    [
        ("Leite Meio Gordo 1L", ProductCategory.DAIRY),
        ("Pão de Forma", ProductCategory.BREAD_BAKERY),
        ("Toilet paper 12 rolls", ProductCategory.PAPER_PRODUCTS),
        ("Detergente Roupa Skip", ProductCategory.LAUNDRY),
        ("Arroz Agulha", ProductCategory.PANTRY_STAPLES),
    ],
)
def test_detect_category(name, category):
    assert detect_category(name).category is category


def test_more_hits_give_more_confidence():
    match = detect_category("Fralda Dodot Baby 4")

    assert match.category is ProductCategory.BABY_CARE
    assert match.confidence == pytest.approx(0.9)
    assert set(match.matched_keywords) == {"fralda", "dodot", "baby"}


def test_keywords_match_whole_words_only():
    # "cat" must not match inside another word.
    match = detect_category("Cathedral candles")

    assert match.category is ProductCategory.UNKNOWN
    assert match.confidence == pytest.approx(0.1)


def test_earlier_category_wins_ties():
    assert detect_category("Chocolate milk").category is ProductCategory.DAIRY


def test_default_cadences():
    assert default_cadence(ProductCategory.DAIRY) == 8
    assert default_cadence(ProductCategory.LAUNDRY) == 45
    assert default_cadence(ProductCategory.UNKNOWN) == 21
