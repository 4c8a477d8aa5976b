"""Delivery slot models."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class DeliverySlot(BaseModel):
    """Delivery window offered by the retailer."""

    slot_date: date = Field(alias="date")
    day_of_week: str = Field(alias="dayOfWeek")
    time_start: str = Field(alias="timeStart", pattern=r"^\d{1,2}:\d{2}$")
    time_end: str = Field(alias="timeEnd", pattern=r"^\d{1,2}:\d{2}$")
    fee: float = 0.0
    is_free: bool = Field(default=False, alias="isFree")
    available: bool = True

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SlotPreferences(BaseModel):
    """Household delivery preferences."""

    preferred_days: list[str] = Field(default_factory=list)
    preferred_time_start: str = Field(default="18:00", pattern=r"^\d{1,2}:\d{2}$")
    preferred_time_end: str = Field(default="21:00", pattern=r"^\d{1,2}:\d{2}$")
    max_fee: float = Field(default=5.0, gt=0)
    day_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    time_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    fee_weight: float = Field(default=0.3, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class SlotScoreBreakdown(BaseModel):
    day_score: int
    time_score: int
    fee_score: int
    availability_score: int

    model_config = ConfigDict(frozen=True)


class ScoredSlot(BaseModel):
    """Delivery slot with a 0-100 preference score."""

    slot: DeliverySlot
    score: int = Field(ge=0, le=100)
    breakdown: SlotScoreBreakdown
    reason: str

    model_config = ConfigDict(frozen=True)


__all__ = ["DeliverySlot", "SlotPreferences", "SlotScoreBreakdown", "ScoredSlot"]
