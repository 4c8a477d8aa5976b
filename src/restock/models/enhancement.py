"""Models describing optional LLM enhancement of heuristic decisions."""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

DecisionT = TypeVar("DecisionT")


class Enhancement(BaseModel):
    """Validated second opinion attached to a heuristic decision."""

    llm_reasoning: str = Field(min_length=1)
    llm_confidence: float = Field(ge=0.0, le=1.0)
    recommendation: Optional[str] = Field(
        default=None,
        description="'prune'/'keep' for prune decisions, a product id for substitutions.",
    )
    safety_flags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class EnhancedDecision(BaseModel, Generic[DecisionT]):
    """Heuristic decision plus an enhancement that is either absent or complete."""

    decision: DecisionT
    enhancement: Optional[Enhancement] = None

    model_config = ConfigDict(frozen=True)

    @property
    def was_llm_enhanced(self) -> bool:
        return self.enhancement is not None


class EnhancementResult(BaseModel, Generic[DecisionT]):
    """Outcome of one enhancement pass."""

    decisions: list[EnhancedDecision[DecisionT]] = Field(default_factory=list)
    invoked: bool = False
    invocation_reason: str = ""
    items_enhanced: int = 0
    items_fallback: int = 0
    flagged_items: list[str] = Field(
        default_factory=list,
        description="Items whose enhancement was discarded by a safety check.",
    )

    model_config = ConfigDict(frozen=True)


__all__ = ["Enhancement", "EnhancedDecision", "EnhancementResult"]
