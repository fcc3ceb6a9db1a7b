"""Planner abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .types import PlannerContext, PlannerDecision


class Planner(ABC):
    """Decides the next prompt given the merged slot state."""

    @abstractmethod
    def decide(self, context: PlannerContext) -> PlannerDecision:
        """Return the planner decision for a given context."""

    @abstractmethod
    def is_confirmation(self, utterance: str) -> bool:
        """Whether ``utterance`` confirms a pending order."""
