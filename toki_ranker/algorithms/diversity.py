from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List

from ..models import ScoredEvent

logger = logging.getLogger(__name__)

FREE_OCCURRENCES = 3
PENALTY_STEP = 0.1


def category_penalty(occurrence: int, w_pen: float) -> float:
    """Penalty for the Nth event of a category (1-based) within one batch."""
    if occurrence <= FREE_OCCURRENCES:
        return 0.0
    return w_pen * (occurrence - FREE_OCCURRENCES) * PENALTY_STEP


def apply_diversity_penalty(scored: List[ScoredEvent], w_pen: float) -> List[ScoredEvent]:
    """
    Discount repeated categories in a single pass over the batch.

    Runs in input order (a running tally, not a sort), so which events count
    as the 4th, 5th, ... occurrence is fixed by the order the caller supplied.
    Scores are adjusted in place; the same list is returned.
    """
    seen: Dict[str, int] = defaultdict(int)
    penalised = 0

    for event in scored:
        seen[event.category] += 1
        penalty = category_penalty(seen[event.category], w_pen)
        if penalty:
            event.algorithm_score -= penalty
            penalised += 1

    logger.debug("diversity penalty applied to %d of %d events", penalised, len(scored))
    return scored
