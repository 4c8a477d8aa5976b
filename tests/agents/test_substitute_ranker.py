"""Tests for the substitute ranker agent."""

from __future__ import annotations

import pytest

from restock.agents.substitute_ranker import (
    brand_similarity,
    build_search_query,
    category_match,
    exclude_identical,
    find_substitutes,
    price_similarity,
    rank,
    size_similarity,
)
from restock.models.cart import CartItem
from restock.models.substitution import SubstituteCandidate


def build_original(**overrides):
    payload = {
        "product_id": "p-butter",
        "name": "Butter 250g",
        "quantity": 1,
        "unit_price": 2.0,
        "total_price": 2.0,
        "available": False,
        "brand": "Brand X",
        "size": "250g",
    }
    payload.update(overrides)
    return CartItem(**payload)


def build_candidate(product_id, name, unit_price, brand=None, size=None, available=True):
    return SubstituteCandidate(
        product_id=product_id,
        name=name,
        unit_price=unit_price,
        brand=brand,
        size=size,
        available=available,
    )


def test_smaller_cheaper_other_brand_butter():
    candidate = build_candidate("p-2", "Butter 200g", 1.80, brand="Brand Y", size="200g")

    [ranked] = rank([candidate], build_original())

    assert ranked.score.brand_similarity == pytest.approx(0.3)
    assert ranked.score.size_similarity == pytest.approx(0.7)
    assert ranked.score.price_similarity == pytest.approx(0.95)
    assert ranked.score.category_match == pytest.approx(0.8)
    assert 0.0 <= ranked.score.overall <= 1.0
    assert ranked.price_delta == pytest.approx(-0.20)
    assert "Similar size" in ranked.reason
    assert "Same or lower price" in ranked.reason


def test_empty_candidate_list_yields_empty_ranking():
    assert rank([], build_original()) == []


def test_ranking_is_sorted_and_ties_keep_input_order():
    original = build_original()
    twin_a = build_candidate("a", "Butter Spread", 2.0, brand="Brand X", size="250g")
    twin_b = build_candidate("b", "Butter Spread", 2.0, brand="Brand X", size="250g")
    weak = build_candidate("c", "Olive oil", 9.0, brand="Other", size="1l")

    ranked = rank([weak, twin_a, twin_b], original)

    assert [entry.candidate.product_id for entry in ranked] == ["a", "b", "c"]
    scores = [entry.score.overall for entry in ranked]
    assert scores == sorted(scores, reverse=True)


def test_scores_stay_within_bounds():
    original = build_original(unit_price=0.5, size=None, brand=None)
    candidates = [
        build_candidate("1", "Butter 250g premium", 50.0, size="5kg"),
        build_candidate("2", "x", 0.0),
        build_candidate("3", "Manteiga 250g", 0.49, brand="Brand X", size="250 g"),
    ]

    for entry in rank(candidates, original):
        for value in entry.score.model_dump().values():
            assert 0.0 <= value <= 1.0


@pytest.mark.parametrize(
    "candidate, original, expected",
    [
        ("Mimosa", "mimosa", 1.0),
        ("Mimosa Bio", "Mimosa", 0.7),
        ("President", "Mimosa", 0.3),
        (None, "Mimosa", 0.5),
    ],
)
def test_brand_similarity(candidate, original, expected):
    assert brand_similarity(candidate, original) == pytest.approx(expected)


@pytest.mark.parametrize(
    "candidate, original, expected",
    [
        ("250g", "250g", 1.0),
        ("0.25kg", "250g", 0.9),
        ("300g", "250g", 0.7),
        ("150g", "250g", 0.5),
        ("1kg", "250g", 0.3),
        ("1l", "250g", 0.5),
        ("family pack", "250g", 0.5),
        ("family pack", "large", 0.4),
        (None, "250g", 0.5),
    ],
)
def test_size_similarity(candidate, original, expected):
    assert size_similarity(candidate, original) == pytest.approx(expected)


@pytest.mark.parametrize(
    "candidate, original, expected",
    [
        (2.0, 2.0, 1.0),
        (1.0, 2.0, 0.75),
        (0.2, 2.0, 0.7),
        (2.1, 2.0, 0.8),
        (2.3, 2.0, 0.6),
        (2.5, 2.0, 0.4),
        (4.0, 2.0, 0.2),
        (1.0, 0.0, 0.5),
    ],
)
def test_price_similarity(candidate, original, expected):
    assert price_similarity(candidate, original) == pytest.approx(expected)


def test_category_match_uses_token_overlap():
    assert category_match("Butter Salted 250g", "Butter Salted 250g") == pytest.approx(1.0)
    assert category_match("Sparkling water", "Butter 250g") == pytest.approx(0.2)
    assert category_match("anything", "a b") == pytest.approx(0.5)


def test_find_substitutes_filters_identical_and_unavailable():
    original = build_original()
    candidates = [
        build_candidate("same", "butter 250g", 2.0),
        build_candidate("gone", "Butter 250g Bio", 2.2, available=False),
        build_candidate("ok-1", "Butter 200g", 1.8, brand="Brand Y", size="200g"),
        build_candidate("ok-2", "Butter 250g Brand X", 2.1, brand="Brand X", size="250g"),
    ]

    result = find_substitutes(original, candidates, max_substitutes=1)

    assert result.has_substitutes
    assert [entry.candidate.product_id for entry in result.substitutes] == ["ok-2"]
    assert result.search_query == "Butter"
    assert [c.product_id for c in exclude_identical(candidates, original)] == ["gone", "ok-1", "ok-2"]


def test_find_substitutes_without_candidates():
    result = find_substitutes(build_original(), [])

    assert not result.has_substitutes
    assert result.best is None


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Leite Meio Gordo 1L", "Leite Meio Gordo"),
        ("Iogurte Natural 4x125g", "Iogurte Natural"),
        ("Ovos", "Ovos"),
    ],
)
def test_build_search_query(name, expected):
    assert build_search_query(name) == expected
