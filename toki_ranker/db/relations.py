# toki_ranker/db/relations.py
"""
Read-only relationship queries consumed by the ranking engine.

All four reads go through PostgREST. Grouping is done client-side because
PostgREST has no GROUP BY; history reads are paged with .range() so large
histories are not truncated at the server's row cap. Every paged query
carries an explicit order, otherwise OFFSET pages may skip or repeat rows.

No retry here: any APIError / httpx error reaches the caller unchanged.
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, List, Mapping, Sequence

from supabase import Client

PARTICIPATION_STATUSES = ["approved", "joined", "completed"]
CONNECTION_PARTICIPATION_STATUS = "approved"
CONNECTION_ACCEPTED = "accepted"

PAGE_SIZE = 1000

# keeps the in.(...) filter well under common 8 KB URL limits
CONNECTION_CHUNK_SIZE = 100


def _select_all(make_query: Callable[[], Any], *, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
    """Page through an ordered query until a short page comes back."""
    rows: List[Dict[str, Any]] = []
    offset = 0
    while True:
        resp = make_query().range(offset, offset + page_size - 1).execute()
        page = resp.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size


def _chunks(values: Sequence[str], size: int) -> List[List[str]]:
    values = list(values)
    return [values[i:i + size] for i in range(0, len(values), size)]


def _filter_value(value: Any) -> str:
    """
    Double-quote a value for a PostgREST logic filter (or=/and=).

    Inside quotes ',' '.' '(' ')' are literal; only '"' and '\\' need escaping.
    """
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _embedded_category(row: Mapping[str, Any]) -> str | None:
    toki = row.get("tokis")
    if isinstance(toki, list):
        toki = toki[0] if toki else None
    if not toki:
        return None
    return toki.get("category")


def _count_by_category(rows: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    counts: Counter[str] = Counter()
    for row in rows:
        category = _embedded_category(row)
        if category:
            counts[category] += 1
    return dict(counts)


def fetch_participation_category_counts(supabase: Client, user_id: str) -> Dict[str, int]:
    """category -> past participations (approved/joined/completed) by user_id."""
    rows = _select_all(
        lambda: supabase.table("toki_participants")
        .select("toki_id, tokis(category)")
        .eq("user_id", user_id)
        .in_("status", PARTICIPATION_STATUSES)
        .order("toki_id")
    )
    return _count_by_category(rows)


def fetch_saved_category_counts(supabase: Client, user_id: str) -> Dict[str, int]:
    """category -> saved tokis by user_id."""
    rows = _select_all(
        lambda: supabase.table("saved_tokis")
        .select("toki_id, tokis(category)")
        .eq("user_id", user_id)
        .order("toki_id")
    )
    return _count_by_category(rows)


def fetch_connection_ids(supabase: Client, user_id: str) -> List[str]:
    """Distinct users with an accepted connection to user_id, either direction."""
    quoted = _filter_value(user_id)
    rows = _select_all(
        lambda: supabase.table("user_connections")
        .select("requester_id, recipient_id")
        .or_(f"requester_id.eq.{quoted},recipient_id.eq.{quoted}")
        .eq("status", CONNECTION_ACCEPTED)
        .order("requester_id")
        .order("recipient_id")
    )

    seen: Dict[str, None] = {}
    for row in rows:
        requester = str(row.get("requester_id"))
        other = row.get("recipient_id") if requester == str(user_id) else row.get("requester_id")
        if other is not None:
            seen.setdefault(str(other), None)
    return list(seen)


def fetch_connection_participation(
    supabase: Client,
    event_ids: Sequence[str],
    connection_ids: Sequence[str],
    *,
    chunk_size: int = CONNECTION_CHUNK_SIZE,
) -> Dict[str, int]:
    """
    event id -> approved participations by any of connection_ids, for event_ids only.

    connection_ids are sent in chunks of chunk_size; per-chunk counts are summed.
    """
    if not event_ids or not connection_ids:
        return {}

    toki_ids = list(event_ids)
    counts: Counter[str] = Counter()
    for chunk in _chunks(connection_ids, chunk_size):
        rows = _select_all(
            lambda: supabase.table("toki_participants")
            .select("toki_id")
            .in_("toki_id", toki_ids)
            .in_("user_id", chunk)
            .eq("status", CONNECTION_PARTICIPATION_STATUS)
            .order("toki_id")
            .order("user_id")
        )
        counts.update(str(row["toki_id"]) for row in rows if row.get("toki_id") is not None)
    return dict(counts)
