"""
Ports (interfaces) for progress persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import ProgressState


class ProgressStore(ABC):
    """
    Port for loading and saving the learner's progress blob.

    Implementations:
        - JsonProgressStore: Whole-state JSON file, written through on every change.
        - MemoryProgressStore: In-process dict, used by tests.
    """

    @abstractmethod
    def load(self) -> dict[str, Any] | None:
        """
        Load the raw saved state.

        Returns:
            The decoded blob, or None when nothing usable was saved.
        """
        pass

    @abstractmethod
    def save(self, state: ProgressState) -> None:
        """
        Persist the complete state. Partial writes must never be observable.
        """
        pass
