# toki_ranker/algorithms/context.py
"""
Per-request UserContext aggregation.

Reads (1) participation history, (2) saved tokis and (3) accepted connections
concurrently, joins them, then issues (4) connection participation for the
candidate batch, which needs the ids from (3).

Any failed read fails the whole aggregation; there is no partial context.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from supabase import Client

from ..config import CONTEXT_READ_WORKERS
from ..db.relations import (
    fetch_connection_ids,
    fetch_connection_participation,
    fetch_participation_category_counts,
    fetch_saved_category_counts,
)
from .types import UserContext

logger = logging.getLogger(__name__)


def load_user_context(
    supabase: Client,
    user_id: str,
    event_ids: Sequence[str],
    *,
    max_workers: int = CONTEXT_READ_WORKERS,
) -> UserContext:
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        history_fut = pool.submit(fetch_participation_category_counts, supabase, user_id)
        saved_fut = pool.submit(fetch_saved_category_counts, supabase, user_id)
        connections_fut = pool.submit(fetch_connection_ids, supabase, user_id)

        # .result() re-raises the read's own exception
        category_counts = history_fut.result()
        saved_category_counts = saved_fut.result()
        connection_ids = connections_fut.result()

    connection_participation = {}
    if event_ids and connection_ids:
        connection_participation = fetch_connection_participation(supabase, event_ids, connection_ids)

    logger.debug(
        "user context loaded: user=%s categories=%d saved=%d connections=%d events_with_connections=%d",
        user_id,
        len(category_counts),
        len(saved_category_counts),
        len(connection_ids),
        len(connection_participation),
    )

    return UserContext(
        category_counts=category_counts,
        saved_category_counts=saved_category_counts,
        connection_ids=connection_ids,
        connection_participation=connection_participation,
    )
