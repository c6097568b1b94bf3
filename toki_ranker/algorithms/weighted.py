# toki_ranker/algorithms/weighted.py
"""
Weighted-sum recommendation algorithm.

score = w_hist   * similarity
      + w_social * combined_social
      + w_pop    * popularity
      + w_time   * recency
      + w_geo    * geographic
      + w_novel  * novelty

followed by the in-order diversity penalty (w_pen). Weights come from the
caller's ScoringContext and are not normalized here.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from supabase import Client

from ..models import Event, ScoredEvent, ScoringContext
from .base import RecommendationStrategy
from .context import load_user_context
from .diversity import apply_diversity_penalty
from .signals import (
    combined_social_score,
    connection_boost,
    geo_score,
    novelty_score,
    popularity_score,
    similarity_score,
    social_score,
    time_score,
)
from .types import UserContext

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeightedRecommendationAlgorithm(RecommendationStrategy):
    name = "weighted-recommendation"

    def __init__(
        self,
        supabase: Optional[Client] = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if supabase is None:
            from ..db.supabase_client import get_supabase_client
            supabase = get_supabase_client()
        self.supabase = supabase
        self.clock = clock

    def get_name(self) -> str:
        return self.name

    def score_events(
        self, events: Sequence[Event], context: ScoringContext
    ) -> List[ScoredEvent]:
        if not events:
            return []

        user_context = self.load_user_context(context.user_id, [event.id for event in events])
        return self.score_with_context(events, context, user_context)

    def score_with_context(
        self,
        events: Sequence[Event],
        context: ScoringContext,
        user_context: UserContext,
        *,
        now: Optional[datetime] = None,
    ) -> List[ScoredEvent]:
        """score_events against an already loaded UserContext (no reads)."""
        now = now or self.clock()

        scored = [
            ScoredEvent.model_validate({
                **event.model_dump(),
                "algorithm_score": self.calculate_event_score(event, context, user_context, now=now),
            })
            for event in events
        ]

        apply_diversity_penalty(scored, context.weights.w_pen)

        logger.debug("scored %d events for user=%s", len(scored), context.user_id)
        return scored

    def load_user_context(self, user_id: str, event_ids: Sequence[str]) -> UserContext:
        return load_user_context(self.supabase, user_id, event_ids)

    def signal_breakdown(
        self,
        event: Event,
        context: ScoringContext,
        user_context: UserContext,
        *,
        now: Optional[datetime] = None,
    ) -> Dict[str, float]:
        """Every signal value for one event, before weighting."""
        return {
            "similarity": similarity_score(event, user_context),
            "social": social_score(event, user_context),
            "connection_boost": connection_boost(event, user_context),
            "combined_social": combined_social_score(event, user_context),
            "popularity": popularity_score(event),
            "recency": time_score(event, now or self.clock()),
            "geographic": geo_score(event, context.user_lat, context.user_lng),
            "novelty": novelty_score(event, user_context),
        }

    def calculate_event_score(
        self,
        event: Event,
        context: ScoringContext,
        user_context: UserContext,
        *,
        now: Optional[datetime] = None,
    ) -> float:
        signals = self.signal_breakdown(event, context, user_context, now=now)
        w = context.weights
        return (
            w.w_hist * signals["similarity"]
            + w.w_social * signals["combined_social"]
            + w.w_pop * signals["popularity"]
            + w.w_time * signals["recency"]
            + w.w_geo * signals["geographic"]
            + w.w_novel * signals["novelty"]
        )
