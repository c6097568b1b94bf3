from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List


@dataclass
class UserContext:
    """
    Relationship facts for one requester, scoped to one candidate batch.
    Built per score_events call and discarded afterwards.
    """
    category_counts: Dict[str, int] = field(default_factory=dict)
    saved_category_counts: Dict[str, int] = field(default_factory=dict)
    connection_ids: List[str] = field(default_factory=list)

    # event id -> number of connections with an approved participation
    connection_participation: Dict[str, int] = field(default_factory=dict)

    @property
    def category_set(self) -> FrozenSet[str]:
        return frozenset(self.category_counts)

    @property
    def connection_id_set(self) -> FrozenSet[str]:
        return frozenset(self.connection_ids)
