#!/usr/bin/env python3
# scripts/preview_ranking.py
"""
Score and print a ranked candidate batch for one user.

Read-only. Pulls upcoming active tokis, the latest weight set (or config
defaults) and the user's stored coordinates, runs them through the algorithm
registry, then sorts by score descending for display.

Usage:
  python -m scripts.preview_ranking --user-id <uuid>

  # explain per-signal values, fall back to given coordinates
  python -m scripts.preview_ranking --user-id <uuid> --lat 47.37 --lng 8.54 --explain
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from typing import Any, List, Optional, Sequence

import httpx
from postgrest.exceptions import APIError

from toki_ranker.algorithms.registry import AlgorithmRegistry
from toki_ranker.algorithms.weighted import WeightedRecommendationAlgorithm
from toki_ranker.config import DEFAULT_ALGORITHM
from toki_ranker.db.scoring_inputs import (
    fetch_candidate_events,
    fetch_latest_weights,
    fetch_user_coordinates,
)
from toki_ranker.models import ScoredEvent, ScoringContext


def rank_by_score(scored: Sequence[ScoredEvent]) -> List[ScoredEvent]:
    """Highest score first; ties keep batch order."""
    return sorted(scored, key=lambda e: e.algorithm_score, reverse=True)


def preview(
    supabase: Any,
    user_id: str,
    *,
    registry: AlgorithmRegistry,
    algorithm: str = DEFAULT_ALGORITHM,
    limit: int = 50,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    explain: bool = False,
    now: Optional[datetime] = None,
) -> List[dict[str, Any]]:
    """
    Returns display rows (rank, id, title, category, score [, signals]),
    best first.
    """
    events = fetch_candidate_events(supabase, limit=limit, now=now)
    weights = fetch_latest_weights(supabase)
    stored_lat, stored_lng = fetch_user_coordinates(supabase, user_id)

    context = ScoringContext(
        user_id=user_id,
        user_lat=stored_lat if stored_lat is not None else lat,
        user_lng=stored_lng if stored_lng is not None else lng,
        weights=weights,
    )

    strategy = registry.get(algorithm, supabase)

    signals_by_id: dict[str, dict[str, float]] = {}
    if explain and events and isinstance(strategy, WeightedRecommendationAlgorithm):
        # one context load shared by the scores and the breakdown
        user_context = strategy.load_user_context(user_id, [e.id for e in events])
        scored = strategy.score_with_context(events, context, user_context, now=now)
        for event in events:
            signals_by_id[event.id] = strategy.signal_breakdown(event, context, user_context, now=now)
    else:
        scored = strategy.score_events(events, context)
    ranked = rank_by_score(scored)

    rows: List[dict[str, Any]] = []
    for rank, event in enumerate(ranked, start=1):
        row: dict[str, Any] = {
            "rank": rank,
            "id": event.id,
            "title": getattr(event, "title", None) or "",
            "category": event.category,
            "score": round(event.algorithm_score, 4),
        }
        if event.id in signals_by_id:
            row["signals"] = {k: round(v, 3) for k, v in signals_by_id[event.id].items()}
        rows.append(row)
    return rows


def print_rows(rows: Sequence[dict[str, Any]]) -> None:
    for row in rows:
        print(
            f"  {row['rank']:>3}. {row['score']:>7.4f}  "
            f"[{row['category']}] {row['title'][:50]}  id={row['id'][:8]}…"
        )
        if "signals" in row:
            print("       " + " ".join(f"{k}={v}" for k, v in row["signals"].items()))


def main(argv: Optional[Sequence[str]] = None, *, supabase: Any = None) -> int:
    parser = argparse.ArgumentParser(description="Preview recommendation ranking for one user.")
    parser.add_argument("--user-id", required=True, help="Requesting user id.")
    parser.add_argument("--limit", type=int, default=50, help="Candidate batch size (default: 50).")
    parser.add_argument("--algorithm", default=DEFAULT_ALGORITHM, help=f"Registry name (default: {DEFAULT_ALGORITHM}).")
    parser.add_argument("--lat", type=float, default=None, help="Fallback latitude if the user has none stored.")
    parser.add_argument("--lng", type=float, default=None, help="Fallback longitude if the user has none stored.")
    parser.add_argument("--explain", action="store_true", help="Print per-signal values.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    try:
        if supabase is None:
            from toki_ranker.db.supabase_client import get_supabase_client
            supabase = get_supabase_client()

        registry = AlgorithmRegistry(supabase)
        rows = preview(
            supabase,
            args.user_id,
            registry=registry,
            algorithm=args.algorithm,
            limit=args.limit,
            lat=args.lat,
            lng=args.lng,
            explain=args.explain,
        )
    except (APIError, httpx.HTTPError, RuntimeError, ValueError) as e:
        print(f"[preview] [ERR] {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(f"[preview] user={args.user_id} algorithm={args.algorithm} candidates={len(rows)}")
    print_rows(rows)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
