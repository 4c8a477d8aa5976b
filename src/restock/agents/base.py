"""Common agent interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class Agent(ABC, Generic[InputT, OutputT]):
    """Base interface implemented by every decision engine stage."""

    @abstractmethod
    def run(self, payload: InputT) -> OutputT:
        """Execute the stage with the given payload."""
