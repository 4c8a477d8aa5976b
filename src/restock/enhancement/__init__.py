"""LLM enhancement of heuristic decisions."""

from .adapter import (
    EnhancementAdapter,
    EnhancementContext,
    EnhancementPolicy,
    UnsafeEnhancementError,
    build_enhancement_adapter,
)

__all__ = [
    "EnhancementAdapter",
    "EnhancementContext",
    "EnhancementPolicy",
    "UnsafeEnhancementError",
    "build_enhancement_adapter",
]
