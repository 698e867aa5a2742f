# ssid/types.py
from __future__ import annotations

from enum import Enum
from typing import TypedDict


class Indicator(Enum):
    # values match the numeric `ss` column
    UNKNOWN = 0.5
    STEADY = 1.0
    TRANSIENT = 0.0

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_value(cls, v: float) -> Indicator:
        return cls(float(v))


class OutputRecord(TypedDict):
    # one row of the output table, in column order
    data: float
    tstat: float | None
    ss: float
    iread1: int | None
    iread2: int | None
    iread3: int | None
    iread4: int | None
    y1filt: float | None
    y2filt: float | None
    y3filt: float | None
    y4filt: float | None


class StepOut(OutputRecord):
    # what FourPointFilter.update returns
    index: int
    regime: str
    warmup: bool


COLUMNS: tuple[str, ...] = (
    "data",
    "tstat",
    "ss",
    "iread1",
    "iread2",
    "iread3",
    "iread4",
    "y1filt",
    "y2filt",
    "y3filt",
    "y4filt",
)
