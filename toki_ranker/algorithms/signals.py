# toki_ranker/algorithms/signals.py
"""
Per-event relevance signals for the weighted recommendation algorithm.

Pure utility: no DB access, no side effects. Every function maps one event
(plus the requester's UserContext where needed) to a value in [0, 1].

  similarity   min((history + 0.5 * saved) / 10, 1)
  social       min(connections_going / 5, 1)
  boost        0.6 * host_is_connection + 0.4 * min(connections_going / 3, 1)
  combined     min(1, social + 0.5 * boost)
  popularity   min(current / max(max_attendees, 1), 1)
  recency      0.3 if unscheduled, 0 if started, else linear ramp over 7 days
  geographic   0.5 if coordinates missing, else tiered decay by km
  novelty      0.3 for a category the user joined before, else 1.0
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from ..geo import calculate_distance
from ..models import Event
from .types import UserContext


# ---------------------------------------------------------------------------
# Signal constants
# ---------------------------------------------------------------------------

HISTORY_SATURATION = 10.0
SAVED_ITEM_WEIGHT = 0.5

SOCIAL_SATURATION = 5.0
BOOST_PARTICIPANT_SATURATION = 3.0
BOOST_HOST_WEIGHT = 0.6
BOOST_PARTICIPANT_WEIGHT = 0.4
BOOST_BLEND = 0.5

UNSCHEDULED_TIME_SCORE = 0.3
RECENCY_WINDOW_HOURS = 24 * 7

NEUTRAL_GEO_SCORE = 0.5
FAR_GEO_SCORE = 0.1

SEEN_CATEGORY_NOVELTY = 0.3
NEW_CATEGORY_NOVELTY = 1.0


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------

def similarity_score(event: Event, user_context: UserContext) -> float:
    count = user_context.category_counts.get(event.category, 0)
    saved = user_context.saved_category_counts.get(event.category, 0)
    combined = count + saved * SAVED_ITEM_WEIGHT
    return min(combined / HISTORY_SATURATION, 1.0)


def social_score(event: Event, user_context: UserContext) -> float:
    going = user_context.connection_participation.get(event.id, 0)
    return min(going / SOCIAL_SATURATION, 1.0)


def connection_boost(event: Event, user_context: UserContext) -> float:
    """Host affinity counts more per unit than attendee affinity."""
    host_boost = 1.0 if event.host_id and event.host_id in user_context.connection_id_set else 0.0
    going = user_context.connection_participation.get(event.id, 0)
    participant_boost = min(going / BOOST_PARTICIPANT_SATURATION, 1.0)

    combined = host_boost * BOOST_HOST_WEIGHT + participant_boost * BOOST_PARTICIPANT_WEIGHT
    return min(combined, 1.0)


def combined_social_score(event: Event, user_context: UserContext) -> float:
    return min(1.0, social_score(event, user_context) + BOOST_BLEND * connection_boost(event, user_context))


def popularity_score(event: Event) -> float:
    max_attendees = max(event.max_attendees or 0, 1)
    current = max(event.current_attendees or 0, 0)
    return min(current / max_attendees, 1.0)


def time_score(event: Event, now: datetime) -> float:
    if event.scheduled_time is None:
        return UNSCHEDULED_TIME_SCORE

    scheduled = _as_utc(event.scheduled_time)
    hours_until = (scheduled - _as_utc(now)).total_seconds() / 3600

    if hours_until <= 0:
        return 0.0

    return max(0.0, min(1.0, 1 - hours_until / RECENCY_WINDOW_HOURS))


def geo_score(
    event: Event,
    user_lat: Optional[float],
    user_lng: Optional[float],
) -> float:
    if user_lat is None or user_lng is None or event.latitude is None or event.longitude is None:
        return NEUTRAL_GEO_SCORE

    distance_km = event.distance_km
    if distance_km is None:
        distance_km = calculate_distance(user_lat, user_lng, event.latitude, event.longitude)

    return geo_score_for_distance(distance_km)


def geo_score_for_distance(distance_km: float) -> float:
    """
    Tiered decay:
      <= 1 km   1.0
      <= 10 km  linear 1.0 -> 0.55, floored at 0.5
      <= 50 km  linear 0.55 -> 0.15, floored at 0.1
      beyond    0.1
    """
    if distance_km <= 1:
        return 1.0
    if distance_km <= 10:
        return max(0.5, 1 - (distance_km - 1) * 0.05)
    if distance_km <= 50:
        return max(FAR_GEO_SCORE, 0.55 - (distance_km - 10) * 0.01)
    return FAR_GEO_SCORE


def novelty_score(event: Event, user_context: UserContext) -> float:
    if event.category in user_context.category_set:
        return SEEN_CATEGORY_NOVELTY
    return NEW_CATEGORY_NOVELTY


def _as_utc(value: datetime) -> datetime:
    # naive timestamps from the DB are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
