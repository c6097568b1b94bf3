from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_CATEGORY = "unknown"


class Event(BaseModel):
    """
    Candidate event handed to a ranking strategy.

    Extra keys (title, status, ...) are kept so callers can pass whole rows
    and get them back on the scored result.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    category: str = UNKNOWN_CATEGORY
    scheduled_time: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_km: Optional[float] = None

    max_attendees: Optional[int] = None
    current_attendees: Optional[int] = None
    host_id: Optional[str] = None

    @field_validator("id", "host_id", mode="before")
    @classmethod
    def _stringify_ids(cls, v: Any) -> Any:
        # uuid.UUID from the client, str in the model
        return str(v) if v is not None else None

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            return UNKNOWN_CATEGORY
        return v


class ScoredEvent(Event):
    algorithm_score: float


class AlgorithmWeights(BaseModel):
    w_hist: float = Field(ge=0)
    w_social: float = Field(ge=0)
    w_pop: float = Field(ge=0)
    w_time: float = Field(ge=0)
    w_geo: float = Field(ge=0)
    w_novel: float = Field(ge=0)
    w_pen: float = Field(ge=0)


class ScoringContext(BaseModel):
    user_id: str
    user_lat: Optional[float] = None
    user_lng: Optional[float] = None
    weights: AlgorithmWeights
