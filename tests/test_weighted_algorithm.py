# tests/test_weighted_algorithm.py
"""
WeightedRecommendationAlgorithm end-to-end (mocked Supabase, frozen clock):

  1. Empty batch: no reads
  2. Identity: same ids, same order, same length, inputs untouched
  3. Cold-start user: hand-computed weighted sums
  4. Warm user: every signal contributing
  5. Novelty toggle + diversity penalty through score_events
  6. Read failures abort scoring
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from toki_ranker.algorithms.weighted import WeightedRecommendationAlgorithm
from toki_ranker.config import DEFAULT_WEIGHTS
from toki_ranker.models import AlgorithmWeights, Event, ScoredEvent, ScoringContext

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _mock_supabase(responses: dict[Any, Any] | None = None) -> MagicMock:
    """table(name).select(cols)...execute() -> responses[(name, cols)] / responses[name] / []."""
    responses = responses or {}
    sb = MagicMock()

    def table_factory(name: str) -> MagicMock:
        builder = MagicMock()
        for method in ["select", "eq", "in_", "or_", "range", "order", "limit", "gte"]:
            getattr(builder, method).return_value = builder

        def execute():
            cols = builder.select.call_args.args[0] if builder.select.call_args else None
            rows = responses.get((name, cols), responses.get(name, []))
            if isinstance(rows, Exception):
                raise rows
            result = MagicMock()
            result.data = rows
            return result

        builder.execute.side_effect = execute
        return builder

    sb.table.side_effect = table_factory
    return sb


def _weights(**overrides) -> AlgorithmWeights:
    values = {name: 0.0 for name in DEFAULT_WEIGHTS}
    values.update(overrides)
    return AlgorithmWeights(**values)


def _context(weights: AlgorithmWeights | None = None, **overrides) -> ScoringContext:
    return ScoringContext(
        user_id=overrides.pop("user_id", "u1"),
        weights=weights or AlgorithmWeights(**DEFAULT_WEIGHTS),
        **overrides,
    )


def _algorithm(sb: MagicMock) -> WeightedRecommendationAlgorithm:
    return WeightedRecommendationAlgorithm(sb, clock=lambda: NOW)


# ---------------------------------------------------------------------------
# 1. Empty batch
# ---------------------------------------------------------------------------

def test_empty_batch_issues_no_reads():
    sb = _mock_supabase()

    assert _algorithm(sb).score_events([], _context()) == []
    sb.table.assert_not_called()


def test_constructor_does_not_query():
    sb = _mock_supabase()
    _algorithm(sb)
    sb.table.assert_not_called()


def test_name():
    assert _algorithm(_mock_supabase()).get_name() == "weighted-recommendation"


# ---------------------------------------------------------------------------
# 2. Identity
# ---------------------------------------------------------------------------

def test_identity_and_order_preserved():
    events = [
        Event(id="e3", category="coffee", title="Espresso tasting"),
        Event(id="e1", category="sports"),
        Event(id="e2", category=None),
        Event(id="e4", category="coffee"),
    ]

    scored = _algorithm(_mock_supabase()).score_events(events, _context())

    assert len(scored) == len(events)
    assert [e.id for e in scored] == ["e3", "e1", "e2", "e4"]
    assert all(isinstance(e, ScoredEvent) for e in scored)
    assert scored[0].title == "Espresso tasting"
    assert scored[2].category == "unknown"


def test_input_events_not_mutated():
    events = [Event(id="e1", category="coffee", current_attendees=2, max_attendees=4)]
    before = events[0].model_dump()

    _algorithm(_mock_supabase()).score_events(events, _context())

    assert events[0].model_dump() == before
    assert not isinstance(events[0], ScoredEvent)


# ---------------------------------------------------------------------------
# 3. Cold-start user with default weights
# ---------------------------------------------------------------------------

def test_cold_start_differences_come_from_popularity_and_recency():
    """
    No history, no connections, no coordinates: similarity 0, social 0,
    novelty 1, geo 0.5 for everyone. Shared part = 0.2*0.5 + 0.1*1 = 0.2.
    """
    events = [
        Event(id="run", category="sports", scheduled_time=NOW + timedelta(hours=24),
              current_attendees=5, max_attendees=10),
        Event(id="latte", category="coffee", scheduled_time=None,
              current_attendees=0, max_attendees=4),
        Event(id="jam", category="music", scheduled_time=NOW + timedelta(hours=84),
              current_attendees=10, max_attendees=10),
    ]

    scored = _algorithm(_mock_supabase()).score_events(events, _context())
    scores = {e.id: e.algorithm_score for e in scored}

    shared = 0.2 * 0.5 + 0.1 * 1.0
    assert scores["run"] == pytest.approx(shared + 0.2 * 0.5 + 0.15 * (1 - 24 / 168))
    assert scores["latte"] == pytest.approx(shared + 0.2 * 0.0 + 0.15 * 0.3)
    assert scores["jam"] == pytest.approx(shared + 0.2 * 1.0 + 0.15 * 0.5)


# ---------------------------------------------------------------------------
# 4. Warm user
# ---------------------------------------------------------------------------

def _warm_responses() -> dict[Any, Any]:
    return {
        ("toki_participants", "toki_id, tokis(category)"): [
            {"toki_id": f"p{i}", "tokis": {"category": "coffee"}} for i in range(4)
        ],
        ("toki_participants", "toki_id"): [{"toki_id": "e1"}, {"toki_id": "e1"}],
        "saved_tokis": [
            {"toki_id": "s1", "tokis": {"category": "coffee"}},
            {"toki_id": "s2", "tokis": {"category": "coffee"}},
        ],
        "user_connections": [
            {"requester_id": "u1", "recipient_id": "f1"},
            {"requester_id": "f2", "recipient_id": "u1"},
        ],
    }


def test_warm_user_all_signals():
    event = Event(
        id="e1", category="coffee", host_id="f1",
        latitude=47.37, longitude=8.54, distance_km=5.0,
        current_attendees=3, max_attendees=6,
    )
    weights = _weights(w_hist=1, w_social=1, w_pop=1, w_time=1, w_geo=1, w_novel=1)
    algo = _algorithm(_mock_supabase(_warm_responses()))

    (scored,) = algo.score_events([event], _context(weights, user_lat=47.36, user_lng=8.53))

    similarity = (4 + 2 * 0.5) / 10                    # 0.5
    boost = 0.6 * 1 + 0.4 * (2 / 3)
    combined_social = min(1.0, 2 / 5 + 0.5 * boost)
    popularity = 0.5
    recency = 0.3
    geo = 1 - (5 - 1) * 0.05                          # 0.8
    novelty = 0.3
    expected = similarity + combined_social + popularity + recency + geo + novelty
    assert scored.algorithm_score == pytest.approx(expected)


def test_signal_breakdown_matches_score():
    event = Event(id="e1", category="coffee", host_id="f1", current_attendees=1, max_attendees=2)
    context = _context()
    algo = _algorithm(_mock_supabase(_warm_responses()))
    user_context = algo.load_user_context("u1", ["e1"])

    signals = algo.signal_breakdown(event, context, user_context)
    w = context.weights
    expected = (
        w.w_hist * signals["similarity"]
        + w.w_social * signals["combined_social"]
        + w.w_pop * signals["popularity"]
        + w.w_time * signals["recency"]
        + w.w_geo * signals["geographic"]
        + w.w_novel * signals["novelty"]
    )

    assert set(signals) == {
        "similarity", "social", "connection_boost", "combined_social",
        "popularity", "recency", "geographic", "novelty",
    }
    assert algo.calculate_event_score(event, context, user_context) == pytest.approx(expected)


def test_score_with_preloaded_context_issues_no_reads():
    event = Event(id="e1", category="coffee", host_id="f1", current_attendees=3, max_attendees=6)
    context = _context()
    algo = _algorithm(_mock_supabase(_warm_responses()))
    user_context = algo.load_user_context("u1", ["e1"])
    reads = algo.supabase.table.call_count

    (preloaded,) = algo.score_with_context([event], context, user_context)

    assert algo.supabase.table.call_count == reads
    (fresh,) = algo.score_events([event], context)
    assert preloaded.algorithm_score == pytest.approx(fresh.algorithm_score)


# ---------------------------------------------------------------------------
# 5. Novelty toggle + diversity
# ---------------------------------------------------------------------------

def test_novelty_drops_after_one_participation():
    weights = _weights(w_novel=1)
    event = Event(id="new", category="coffee")

    cold = _algorithm(_mock_supabase()).score_events([event], _context(weights))
    warm = _algorithm(_mock_supabase({
        ("toki_participants", "toki_id, tokis(category)"): [
            {"toki_id": "old", "tokis": {"category": "coffee"}},
        ],
    })).score_events([event], _context(weights))

    assert cold[0].algorithm_score == pytest.approx(1.0)
    assert warm[0].algorithm_score == pytest.approx(0.3)


def test_diversity_penalty_applied_in_input_order():
    weights = _weights(w_novel=1, w_pen=1)
    events = [Event(id=f"s{i}", category="sports") for i in range(1, 6)]
    events.insert(2, Event(id="c1", category="coffee"))

    scored = _algorithm(_mock_supabase()).score_events(events, _context(weights))
    scores = {e.id: e.algorithm_score for e in scored}

    assert scores["s1"] == pytest.approx(1.0)
    assert scores["s2"] == pytest.approx(1.0)
    assert scores["s3"] == pytest.approx(1.0)
    assert scores["s4"] == pytest.approx(0.9)
    assert scores["s5"] == pytest.approx(0.8)
    assert scores["c1"] == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# 6. Failures
# ---------------------------------------------------------------------------

def test_read_failure_aborts_scoring():
    sb = _mock_supabase({"saved_tokis": RuntimeError("pool exhausted")})

    with pytest.raises(RuntimeError, match="pool exhausted"):
        _algorithm(sb).score_events([Event(id="e1", category="coffee")], _context())
