"""Prompt templates for LLM review of heuristic decisions."""

from __future__ import annotations

import json
from typing import Mapping, Optional, Sequence

from restock.models.pruning import PruneDecision
from restock.models.substitution import SubstitutionResult

MAX_CONTEXT_ITEMS = 40

PRUNE_SYSTEM_PROMPT = (
    "You review grocery reorder suggestions for a household. A heuristic has estimated "
    "whether each cart item is probably still stocked at home based on purchase cadence. "
    "Removing an item the household still needs is far worse than keeping one they do not "
    "need, so only recommend removal when the evidence is strong, and always explain why. "
    "Baby and pet products are high consequence: be conservative. The schema:\n"
    "{\n"
    '  "product_name": "item name exactly as given",\n'
    '  "should_prune": true|false,\n'
    '  "confidence": number between 0 and 1,\n'
    '  "reason": "one or two sentences",\n'
    '  "safety_flags": ["optional short flags"]\n'
    "}\n"
    "Return only JSON."
)

PRUNE_USER_PROMPT = (
    "Cart item under review:\n{decision_json}\n\n"
    "Other items in the same cart:\n{cart_items}\n\n"
    "Purchase analytics for this item:\n{analytics_json}\n\n"
    "Should this item be removed from the reorder? Return strict JSON using the schema "
    "described earlier."
)

SUBSTITUTION_SYSTEM_PROMPT = (
    "You help a household pick a replacement for an unavailable grocery item. A heuristic "
    "has ranked candidates by brand, size, price and name similarity. Pick the candidate "
    "the household would most plausibly accept, or none when no candidate is acceptable. "
    "Never recommend a product outside the candidate list. The schema:\n"
    "{\n"
    '  "original_product": "unavailable item name",\n'
    '  "recommended_product": "candidate name or null",\n'
    '  "confidence": number between 0 and 1,\n'
    '  "reason": "one or two sentences",\n'
    '  "safety_flags": ["optional short flags"]\n'
    "}\n"
    "Return only JSON."
)

SUBSTITUTION_USER_PROMPT = (
    "Unavailable item:\n{original_json}\n\n"
    "Ranked candidates (best first):\n{candidates_json}\n\n"
    "Which candidate should replace it? Return strict JSON using the schema described "
    "earlier."
)


def _cart_listing(cart_item_names: Sequence[str], exclude: str) -> str:
    names = [name for name in cart_item_names if name != exclude][:MAX_CONTEXT_ITEMS]
    if not names:
        return "(none)"
    return "\n".join(f"- {name}" for name in names)


def build_prune_prompt(
    decision: PruneDecision,
    cart_item_names: Sequence[str] = (),
    analytics: Optional[Mapping[str, object]] = None,
) -> dict[str, str]:
    context = decision.context
    summary = {
        "product_name": decision.product_name,
        "heuristic_prune": decision.prune,
        "heuristic_confidence": decision.confidence,
        "heuristic_reason": decision.reason,
        "category": context.category.value,
        "days_since_last_purchase": context.days_since_last_purchase,
        "restock_cadence_days": context.restock_cadence_days,
        "cadence_source": context.cadence_source,
    }
    return {
        "system": PRUNE_SYSTEM_PROMPT,
        "user": PRUNE_USER_PROMPT.format(
            decision_json=json.dumps(summary, ensure_ascii=False, indent=2),
            cart_items=_cart_listing(cart_item_names, decision.product_name),
            analytics_json=(
                json.dumps(dict(analytics), ensure_ascii=False, indent=2) if analytics else "(no purchase history)"
            ),
        ),
    }


def build_substitution_prompt(result: SubstitutionResult) -> dict[str, str]:
    original = result.original_item
    original_summary = {
        "name": original.name,
        "brand": original.brand,
        "size": original.size,
        "unit_price": original.unit_price,
    }
    candidates = [
        {
            "name": ranked.candidate.name,
            "brand": ranked.candidate.brand,
            "size": ranked.candidate.size,
            "unit_price": ranked.candidate.unit_price,
            "heuristic_score": ranked.score.overall,
            "heuristic_reason": ranked.reason,
        }
        for ranked in result.substitutes
    ]
    return {
        "system": SUBSTITUTION_SYSTEM_PROMPT,
        "user": SUBSTITUTION_USER_PROMPT.format(
            original_json=json.dumps(original_summary, ensure_ascii=False, indent=2),
            candidates_json=json.dumps(candidates, ensure_ascii=False, indent=2),
        ),
    }


__all__ = [
    "PRUNE_SYSTEM_PROMPT",
    "SUBSTITUTION_SYSTEM_PROMPT",
    "build_prune_prompt",
    "build_substitution_prompt",
]
