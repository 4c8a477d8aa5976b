"""LLM runtime abstraction layer."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence, Union


class DecisionLLM(Protocol):
    """Protocol for backends that review heuristic decisions."""

    def complete(self, system: str, user: str) -> str:
        """Return the raw model reply for a system/user prompt pair."""


class MockDecisionLLM:
    """Deterministic LLM stub that replays canned replies."""

    def __init__(
        self,
        replies: Union[str, Sequence[Union[str, Exception]], Callable[[str, str], str]] = "{}",
    ) -> None:
        self._replies = replies
        self.calls: list[tuple[str, str]] = []

    def complete(self, system: str, user: str) -> str:
        self.calls.append((system, user))
        if callable(self._replies):
            return self._replies(system, user)
        if isinstance(self._replies, str):
            return self._replies
        index = min(len(self.calls), len(self._replies)) - 1
        reply = self._replies[index]
        if isinstance(reply, Exception):
            raise reply
        return reply
