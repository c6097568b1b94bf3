# toki_ranker/db/scoring_inputs.py
"""
Caller-side inputs for a scoring call: candidate events, the current weight
set and the requester's coordinates.

The engine never calls these; they back scripts/preview_ranking.py the same
way the tokis routes assemble a ScoringContext before ranking.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from supabase import Client

from ..config import default_weights
from ..models import AlgorithmWeights, Event

WEIGHT_FIELDS = ("w_hist", "w_social", "w_pop", "w_time", "w_geo", "w_novel", "w_pen")
CANDIDATE_COLUMNS = (
    "id,title,category,host_id,scheduled_time,latitude,longitude,"
    "max_attendees,current_attendees,status"
)


def fetch_latest_weights(supabase: Client) -> AlgorithmWeights:
    """Most recent algorithm_hyperparameters row; config defaults if none or per missing column."""
    resp = (
        supabase.table("algorithm_hyperparameters")
        .select(",".join(WEIGHT_FIELDS))
        .order("updated_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = resp.data or []
    fallback = default_weights()
    if not rows:
        return fallback

    row = rows[0]
    return AlgorithmWeights(**{
        name: float(row[name]) if row.get(name) is not None else getattr(fallback, name)
        for name in WEIGHT_FIELDS
    })


def fetch_user_coordinates(supabase: Client, user_id: str) -> Tuple[Optional[float], Optional[float]]:
    resp = (
        supabase.table("users")
        .select("latitude,longitude")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    rows = resp.data or []
    if not rows:
        return None, None
    return rows[0].get("latitude"), rows[0].get("longitude")


def fetch_candidate_events(
    supabase: Client,
    *,
    limit: int = 50,
    now: Optional[datetime] = None,
) -> List[Event]:
    """Upcoming active tokis, soonest first."""
    now = now or datetime.now(timezone.utc)
    resp = (
        supabase.table("tokis")
        .select(CANDIDATE_COLUMNS)
        .eq("status", "active")
        .gte("scheduled_time", now.isoformat())
        .order("scheduled_time", desc=False)
        .limit(limit)
        .execute()
    )
    return [Event.model_validate(row) for row in (resp.data or [])]
