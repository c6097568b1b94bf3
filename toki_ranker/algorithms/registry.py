from __future__ import annotations

from typing import Callable, Dict, List, Optional

from supabase import Client

from .base import RecommendationStrategy
from .weighted import WeightedRecommendationAlgorithm


ALGORITHMS: Dict[str, Callable[[Client], RecommendationStrategy]] = {
    "weighted-recommendation": WeightedRecommendationAlgorithm,
    "default": WeightedRecommendationAlgorithm,
}


class UnknownAlgorithmError(ValueError):
    pass


class AlgorithmRegistry:
    """
    Name -> strategy instance, built lazily on first get() and reused.

    One registry is created at service start and handed to request handlers.
    Two threads resolving the same name at once may both build an instance;
    strategies are stateless apart from the read handle, so the last one
    cached wins and nothing depends on exactly-once construction.
    """

    def __init__(
        self,
        default_client: Optional[Client] = None,
        *,
        client_factory: Optional[Callable[[], Client]] = None,
        algorithms: Optional[Dict[str, Callable[[Client], RecommendationStrategy]]] = None,
    ):
        self._default_client = default_client
        self._client_factory = client_factory
        self._algorithms = dict(ALGORITHMS if algorithms is None else algorithms)
        self._strategies: Dict[str, RecommendationStrategy] = {}

    def get(self, name: str, db: Optional[Client] = None) -> RecommendationStrategy:
        strategy = self._strategies.get(name)
        if strategy is not None:
            return strategy

        factory = self._algorithms.get(name)
        if factory is None:
            known = ", ".join(sorted(set(self._algorithms) | set(self._strategies)))
            raise UnknownAlgorithmError(f"Unknown algorithm type: {name!r} (known: {known})")

        strategy = factory(db if db is not None else self._default())
        self._strategies[name] = strategy
        return strategy

    def register(self, name: str, strategy: RecommendationStrategy) -> None:
        self._strategies[name] = strategy

    def clear(self) -> None:
        self._strategies.clear()

    def available(self) -> List[str]:
        return sorted(set(self._algorithms) | set(self._strategies))

    def _default(self) -> Client:
        if self._default_client is None:
            if self._client_factory is None:
                from ..db.supabase_client import get_supabase_client
                self._client_factory = get_supabase_client
            self._default_client = self._client_factory()
        return self._default_client
