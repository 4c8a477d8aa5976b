"""Prometheus metrics definitions for the decision engine."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

PRUNE_DECISIONS = Counter(
    "restock_prune_decisions_total",
    "Stock pruner decisions by outcome bucket",
    ["bucket"],
)

SUBSTITUTES_RANKED = Counter(
    "restock_substitutes_ranked_total",
    "Substitute candidates scored by the ranker",
)

ENHANCEMENT_CALLS = Counter(
    "restock_enhancement_calls_total",
    "LLM enhancement attempts by outcome",
    ["kind", "outcome"],
)

ENHANCEMENT_LATENCY = Histogram(
    "restock_enhancement_latency_seconds",
    "Latency of individual LLM enhancement calls",
    ["kind"],
)

REVIEW_PACKS = Counter(
    "restock_review_packs_total",
    "Review packs assembled",
)

__all__ = [
    "PRUNE_DECISIONS",
    "SUBSTITUTES_RANKED",
    "ENHANCEMENT_CALLS",
    "ENHANCEMENT_LATENCY",
    "REVIEW_PACKS",
]
