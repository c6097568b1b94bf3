import os
from dotenv import load_dotenv

from .models import AlgorithmWeights

load_dotenv()

DEFAULT_ALGORITHM = os.getenv("TOKI_RANKER_ALGORITHM", "weighted-recommendation")

# Threads for the independent context reads (history, saved, connections)
CONTEXT_READ_WORKERS = max(1, min(int(os.getenv("TOKI_RANKER_CONTEXT_WORKERS", "3").strip() or "3"), 8))

# Fallback weights for callers when algorithm_hyperparameters has no row.
# The engine never reads these; weights always arrive on the ScoringContext.
DEFAULT_WEIGHTS = {
    "w_hist": 0.2,
    "w_social": 0.15,
    "w_pop": 0.2,
    "w_time": 0.15,
    "w_geo": 0.2,
    "w_novel": 0.1,
    "w_pen": 0.05,
}


def default_weights() -> AlgorithmWeights:
    """DEFAULT_WEIGHTS with TOKI_W_HIST ... TOKI_W_PEN env overrides applied."""
    values = {}
    for name, fallback in DEFAULT_WEIGHTS.items():
        raw = os.getenv(f"TOKI_{name.upper()}", "").strip()
        values[name] = float(raw) if raw else fallback
    return AlgorithmWeights(**values)


def supabase_credentials() -> tuple[str, str]:
    """(url, key) from the environment; fail fast if either is missing."""
    url = os.getenv("SUPABASE_URL")
    key = (
        os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        or os.getenv("SUPABASE_SERVICE_KEY")
        or os.getenv("SUPABASE_ANON_KEY")
    )

    missing = []
    if not url:
        missing.append("SUPABASE_URL")
    if not key:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")
    if missing:
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Copy .env.example to .env and fill in your Supabase credentials."
        )
    return url, key
