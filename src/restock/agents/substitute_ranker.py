"""Substitute ranking agent for unavailable cart items."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from restock.agents.base import Agent
from restock.metrics import SUBSTITUTES_RANKED
from restock.models.cart import CartItem
from restock.models.substitution import (
    RankedSubstitute,
    SubstituteCandidate,
    SubstituteScore,
    SubstitutionResult,
)
from restock.normalize import name_tokens, normalize_name, parse_size

logger = logging.getLogger(__name__)

BRAND_WEIGHT = 0.3
SIZE_WEIGHT = 0.2
PRICE_WEIGHT = 0.3
CATEGORY_WEIGHT = 0.2

NEUTRAL = 0.5

BRAND_EXACT = 1.0
BRAND_PARTIAL = 0.7
BRAND_DIFFERENT = 0.3

SIZE_EXACT = 1.0
# (low, high, score): ratio of candidate size to original size.
SIZE_RATIO_BANDS = ((0.9, 1.1, 0.9), (0.7, 1.3, 0.7), (0.5, 1.5, 0.5))
SIZE_FAR = 0.3
SIZE_UNPARSEABLE_ONE = 0.5
SIZE_UNPARSEABLE_BOTH = 0.4

PRICE_EXACT = 1.0
PRICE_CHEAPER_FLOOR = 0.7
# (max ratio, score) for candidates dearer than the original.
PRICE_DEARER_BANDS = ((1.1, 0.8), (1.2, 0.6), (1.3, 0.4))
PRICE_FAR = 0.2

# (min overlap, score)
CATEGORY_BANDS = ((0.7, 1.0), (0.5, 0.8), (0.3, 0.6))
CATEGORY_ANY = 0.4
CATEGORY_NONE = 0.2

EXCELLENT_MATCH = 0.8
GOOD_MATCH = 0.6
SAME_BRAND = 0.9
SAME_SIZE = SIZE_RATIO_BANDS[0][2]
SIMILAR_SIZE = SIZE_RATIO_BANDS[1][2]
VERY_SIMILAR_PRODUCT = CATEGORY_BANDS[1][1]
SIMILAR_PRODUCT_TYPE = CATEGORY_BANDS[2][1]
SLIGHTLY_DEARER_RATIO = PRICE_DEARER_BANDS[0][0]

_SIZE_STRIP_RE = re.compile(r"\d+(?:[.,]\d+)?\s*(?:g|kg|ml|l|cl|un|unidades)\b", re.IGNORECASE)
_MULTIPACK_RE = re.compile(r"\d+\s*x\s*\d+(?:[.,]\d+)?\s*(?:kg|g|ml|cl|l)?\b", re.IGNORECASE)


def brand_similarity(candidate_brand: Optional[str], original_brand: Optional[str]) -> float:
    candidate = (candidate_brand or "").strip().casefold()
    original = (original_brand or "").strip().casefold()
    if not candidate or not original:
        return NEUTRAL
    if candidate == original:
        return BRAND_EXACT
    if candidate in original or original in candidate:
        return BRAND_PARTIAL
    return BRAND_DIFFERENT


def size_similarity(candidate_size: Optional[str], original_size: Optional[str]) -> float:
    candidate = (candidate_size or "").strip().casefold()
    original = (original_size or "").strip().casefold()
    if not candidate or not original:
        return NEUTRAL
    if candidate == original:
        return SIZE_EXACT

    parsed_candidate = parse_size(candidate)
    parsed_original = parse_size(original)
    if parsed_candidate and parsed_original and parsed_candidate[1] != parsed_original[1]:
        # Weight against volume cannot be compared.
        parsed_candidate = None
    if parsed_candidate is None and parsed_original is None:
        return SIZE_UNPARSEABLE_BOTH
    if parsed_candidate is None or parsed_original is None or parsed_original[0] <= 0:
        return SIZE_UNPARSEABLE_ONE

    ratio = parsed_candidate[0] / parsed_original[0]
    for low, high, score in SIZE_RATIO_BANDS:
        if low <= ratio <= high:
            return score
    return SIZE_FAR


def price_similarity(candidate_price: float, original_price: Optional[float]) -> float:
    if not original_price or original_price <= 0:
        return NEUTRAL
    if candidate_price == original_price:
        return PRICE_EXACT
    ratio = candidate_price / original_price
    if ratio < 1.0:
        return max(PRICE_CHEAPER_FLOOR, 1.0 - (1.0 - ratio) * 0.5)
    for max_ratio, score in PRICE_DEARER_BANDS:
        if ratio <= max_ratio:
            return score
    return PRICE_FAR


def category_match(candidate_name: str, original_name: str) -> float:
    original_tokens = name_tokens(original_name)
    if not original_tokens:
        return NEUTRAL
    candidate_tokens = name_tokens(candidate_name)
    overlap = len(original_tokens & candidate_tokens) / len(original_tokens)
    for min_overlap, score in CATEGORY_BANDS:
        if overlap >= min_overlap:
            return score
    return CATEGORY_ANY if overlap > 0 else CATEGORY_NONE


def score_candidate(candidate: SubstituteCandidate, original: CartItem) -> SubstituteScore:
    brand = brand_similarity(candidate.brand, original.brand)
    size = size_similarity(candidate.size, original.size)
    price = price_similarity(candidate.unit_price, original.unit_price)
    category = category_match(candidate.name, original.name)
    overall = (
        brand * BRAND_WEIGHT + size * SIZE_WEIGHT + price * PRICE_WEIGHT + category * CATEGORY_WEIGHT
    )
    return SubstituteScore(
        brand_similarity=brand,
        size_similarity=size,
        price_similarity=price,
        category_match=category,
        overall=round(min(1.0, max(0.0, overall)), 4),
    )


def describe_substitute(
    candidate: SubstituteCandidate, score: SubstituteScore, original: CartItem
) -> str:
    if score.overall >= EXCELLENT_MATCH:
        reasons = ["Excellent match"]
    elif score.overall >= GOOD_MATCH:
        reasons = ["Good match"]
    else:
        reasons = ["Alternative option"]

    if score.brand_similarity >= SAME_BRAND:
        reasons.append("Same brand")
    elif score.brand_similarity >= BRAND_PARTIAL:
        reasons.append("Similar brand")

    if score.size_similarity >= SAME_SIZE:
        reasons.append("Same size")
    elif score.size_similarity >= SIMILAR_SIZE:
        reasons.append("Similar size")

    if original.unit_price > 0:
        if candidate.unit_price <= original.unit_price:
            reasons.append("Same or lower price")
        elif candidate.unit_price <= original.unit_price * SLIGHTLY_DEARER_RATIO:
            reasons.append("Slightly more expensive")

    if score.category_match >= VERY_SIMILAR_PRODUCT:
        reasons.append("Very similar product")
    elif score.category_match >= SIMILAR_PRODUCT_TYPE:
        reasons.append("Similar product type")

    return ". ".join(reasons)


@dataclass(frozen=True)
class RankRequest:
    candidates: Sequence[SubstituteCandidate]
    original_item: CartItem


class SubstituteRanker(Agent[RankRequest, List[RankedSubstitute]]):
    """
    Score replacement candidates against an unavailable item.

    Candidates must already exclude the original product itself. The result is sorted by
    overall score with ties kept in input order.
    """

    def run(self, payload: RankRequest) -> List[RankedSubstitute]:
        original = payload.original_item
        ranked: List[RankedSubstitute] = []
        for candidate in payload.candidates:
            score = score_candidate(candidate, original)
            ranked.append(
                RankedSubstitute(
                    candidate=candidate,
                    score=score,
                    price_delta=round(candidate.unit_price - original.unit_price, 2),
                    reason=describe_substitute(candidate, score, original),
                )
            )
        # list.sort is stable, so equal scores preserve candidate order.
        ranked.sort(key=lambda entry: entry.score.overall, reverse=True)
        if ranked:
            SUBSTITUTES_RANKED.inc(len(ranked))
            logger.info(
                "SubstituteRanker item=%s candidates=%s best=%s (%.2f)",
                original.name,
                len(ranked),
                ranked[0].candidate.name,
                ranked[0].score.overall,
            )
        return ranked


def rank(candidates: Sequence[SubstituteCandidate], original_item: CartItem) -> List[RankedSubstitute]:
    """Rank candidates best first; an empty candidate list yields an empty result."""

    return SubstituteRanker().run(RankRequest(candidates=list(candidates), original_item=original_item))


def exclude_identical(
    candidates: Sequence[SubstituteCandidate], original_item: CartItem
) -> List[SubstituteCandidate]:
    """Drop candidates whose name matches the original item (case-insensitive)."""

    target = normalize_name(original_item.name)
    return [candidate for candidate in candidates if normalize_name(candidate.name) != target]


def build_search_query(product_name: str) -> str:
    """Strip sizes and multipack markers so a search returns broader alternatives."""

    query = _SIZE_STRIP_RE.sub("", _MULTIPACK_RE.sub("", product_name))
    query = " ".join(query.split())
    return query if len(query) >= 3 else product_name


def find_substitutes(
    original_item: CartItem,
    candidates: Sequence[SubstituteCandidate],
    *,
    max_substitutes: int = 5,
) -> SubstitutionResult:
    """Filter, rank, and truncate candidates for one unavailable item."""

    eligible = [c for c in exclude_identical(candidates, original_item) if c.available]
    ranked = rank(eligible, original_item)[:max_substitutes]
    return SubstitutionResult(
        original_item=original_item,
        substitutes=ranked,
        search_query=build_search_query(original_item.name),
    )


__all__ = [
    "RankRequest",
    "SubstituteRanker",
    "brand_similarity",
    "size_similarity",
    "price_similarity",
    "category_match",
    "score_candidate",
    "describe_substitute",
    "rank",
    "exclude_identical",
    "build_search_query",
    "find_substitutes",
]
