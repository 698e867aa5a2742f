# service/schemas.py
from __future__ import annotations

from pydantic import BaseModel, Field


class ClassifyIn(BaseModel):
    samples: list[float]
    # omitted params fall back to the service config
    tcrit_u: float | None = None
    tcrit_l: float | None = None
    n: int | None = None
    ewma: float | None = None
    stp: int | None = None


class Row(BaseModel):
    data: float | None = None
    tstat: float | None = None
    ss: float
    regime: str
    iread1: int | None = None
    iread2: int | None = None
    iread3: int | None = None
    iread4: int | None = None
    y1filt: float | None = None
    y2filt: float | None = None
    y3filt: float | None = None
    y4filt: float | None = None


class ClassifyOut(BaseModel):
    n_points: int
    params: dict[str, float]
    rows: list[Row]
    latency_ms: dict[str, float] = Field(default_factory=dict)


class StreamIn(BaseModel):
    x: float
    series_id: str | None = None


class StreamOut(Row):
    series_id: str
    index: int
    warmup: bool = True
    latency_ms: dict[str, float] = Field(default_factory=dict)
