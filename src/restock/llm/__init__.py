"""LLM backends used to review heuristic decisions."""

from restock.llm.client import (
    DecisionLLMClient,
    EnhancementUnavailableError,
    build_decision_llm_client,
)
from restock.llm.interface import DecisionLLM, MockDecisionLLM

__all__ = [
    "DecisionLLM",
    "DecisionLLMClient",
    "EnhancementUnavailableError",
    "MockDecisionLLM",
    "build_decision_llm_client",
]
