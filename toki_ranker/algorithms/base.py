from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..models import Event, ScoredEvent, ScoringContext


class RecommendationStrategy(ABC):
    """Swappable ranking algorithm. Callers only depend on this contract."""

    @abstractmethod
    def score_events(
        self, events: Sequence[Event], context: ScoringContext
    ) -> List[ScoredEvent]:
        """
        Return one ScoredEvent per input event, in input order.
        An empty batch returns [] without touching the database.
        """

    @abstractmethod
    def get_name(self) -> str:
        """Stable identifier used by the registry."""
