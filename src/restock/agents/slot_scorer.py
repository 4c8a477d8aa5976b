"""Delivery slot scoring against household preferences."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from restock.agents.base import Agent
from restock.models.slots import DeliverySlot, ScoredSlot, SlotPreferences, SlotScoreBreakdown

logger = logging.getLogger(__name__)

_DAY_ADJACENCY = {
    "monday": ("sunday", "tuesday"),
    "tuesday": ("monday", "wednesday"),
    "wednesday": ("tuesday", "thursday"),
    "thursday": ("wednesday", "friday"),
    "friday": ("thursday", "saturday"),
    "saturday": ("friday", "sunday"),
    "sunday": ("saturday", "monday"),
}


def _minutes(value: str) -> int:
    hours, _, minutes = value.partition(":")
    return int(hours or 0) * 60 + int(minutes or 0)


def day_score(day_of_week: str, preferred_days: Sequence[str]) -> int:
    if not preferred_days:
        return 50
    preferred = {day.lower() for day in preferred_days}
    day = day_of_week.lower()
    if day in preferred:
        return 100
    if any(neighbour in preferred for neighbour in _DAY_ADJACENCY.get(day, ())):
        return 50
    return 20


def time_score(slot_start: str, slot_end: str, preferred_start: str, preferred_end: str) -> int:
    start, end = _minutes(slot_start), _minutes(slot_end)
    pref_start, pref_end = _minutes(preferred_start), _minutes(preferred_end)

    overlap = max(0, min(end, pref_end) - max(start, pref_start))
    duration = end - start
    if overlap > 0 and duration > 0:
        return round(100 * overlap / duration)

    distance = pref_start - end if end <= pref_start else start - pref_end
    return round(max(0.0, 80 - (distance / 60) * 20))


def fee_score(fee: float, max_fee: float, is_free: bool = False) -> int:
    if is_free or fee <= 0:
        return 100
    return round(max(0.0, 100 * (1 - fee / (max_fee * 2))))


def _slot_reason(slot: DeliverySlot, breakdown: SlotScoreBreakdown, prefs: SlotPreferences) -> str:
    if not slot.available:
        return "Unavailable"
    if slot.is_free or slot.fee <= 0:
        return "Free delivery slot"

    parts: List[str] = []
    if breakdown.day_score == 100 and prefs.preferred_days:
        parts.append(slot.day_of_week.capitalize())
    if breakdown.time_score >= 80:
        start_hour = _minutes(slot.time_start) // 60
        parts.append("morning" if start_hour < 12 else "afternoon" if start_hour < 17 else "evening")
    if parts:
        return f"Best match for {' '.join(parts)}"
    return "Available slot"


def score_slot(slot: DeliverySlot, preferences: SlotPreferences) -> ScoredSlot:
    breakdown = SlotScoreBreakdown(
        day_score=day_score(slot.day_of_week, preferences.preferred_days),
        time_score=time_score(
            slot.time_start,
            slot.time_end,
            preferences.preferred_time_start,
            preferences.preferred_time_end,
        ),
        fee_score=fee_score(slot.fee, preferences.max_fee, slot.is_free),
        availability_score=100 if slot.available else 0,
    )
    weighted = (
        breakdown.day_score * preferences.day_weight
        + breakdown.time_score * preferences.time_weight
        + breakdown.fee_score * preferences.fee_weight
    )
    score = round(weighted) if slot.available else 0
    return ScoredSlot(
        slot=slot,
        score=min(100, max(0, score)),
        breakdown=breakdown,
        reason=_slot_reason(slot, breakdown, preferences),
    )


@dataclass(frozen=True)
class SlotRequest:
    slots: Sequence[DeliverySlot]
    preferences: SlotPreferences


class SlotScorer(Agent[SlotRequest, List[ScoredSlot]]):
    """Rank delivery slots best first; ties keep the retailer's listing order."""

    def run(self, payload: SlotRequest) -> List[ScoredSlot]:
        scored = [score_slot(slot, payload.preferences) for slot in payload.slots]
        scored.sort(key=lambda entry: entry.score, reverse=True)
        logger.debug("SlotScorer ranked %s slot(s)", len(scored))
        return scored


def rank_slots(slots: Sequence[DeliverySlot], preferences: SlotPreferences) -> List[ScoredSlot]:
    return SlotScorer().run(SlotRequest(slots=list(slots), preferences=preferences))


__all__ = ["SlotRequest", "SlotScorer", "day_score", "time_score", "fee_score", "score_slot", "rank_slots"]
