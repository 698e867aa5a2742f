# ssid/detect/fourpoint.py
from __future__ import annotations

import json
import logging
from math import isfinite, sqrt
from typing import Any

from ssid.errors import ConfigurationError, DataError
from ssid.types import Indicator, StepOut
from ssid.window import CornerWindow

logger = logging.getLogger("ssid")

VAR_FLOOR = 0.01
T_MAX = 5.0
# variance filter constant 0.05, half of it lands on the squared delta
VAR_GAIN = 0.05 * 0.5
VAR_KEEP = 0.95


def _as_float(name: str, v: Any) -> float:
    if isinstance(v, bool):
        raise ConfigurationError(f"{name} must be a number, got {v!r}")
    try:
        f = float(v)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {v!r}") from None
    if not isfinite(f):
        raise ConfigurationError(f"{name} must be finite, got {v!r}")
    return f


def check_params(n: Any, ewma: Any, tcrit_u: Any, tcrit_l: Any) -> tuple[int, float, float, float]:
    """Validate and normalize filter parameters; raises ConfigurationError."""
    n_f = _as_float("n", n)
    if n_f != int(n_f):
        raise ConfigurationError(f"n must be an integer, got {n!r}")
    n_i = int(n_f)
    if n_i < 4:
        raise ConfigurationError(f"n must be >= 4, got {n_i}")

    a = _as_float("ewma", ewma)
    if not (0.0 < a <= 1.0):
        raise ConfigurationError(f"ewma must be in (0, 1], got {a}")

    hi = _as_float("tcrit_u", tcrit_u)
    lo = _as_float("tcrit_l", tcrit_l)
    if lo > hi:
        raise ConfigurationError(f"tcrit_l ({lo}) must not exceed tcrit_u ({hi})")
    return n_i, a, hi, lo


def coerce_stp(stp: Any) -> int:
    """Validate `stp`; values below 1 are clamped to 1."""
    s = _as_float("stp", stp)
    if s != int(s):
        raise ConfigurationError(f"stp must be an integer, got {stp!r}")
    return max(1, int(s))


class FourPointFilter:
    """
    Streaming four-corner SS/TS filter.

    Four EWMA filters track the samples seen at four fixed offsets of a
    circular window. Their spread (max - min), scaled by the square root of a
    filtered variance of successive differences, is the t-statistic. The
    indicator follows t with hysteresis:

      t <= tcrit_l           -> steady
      t >  tcrit_u           -> transient
      tcrit_l < t <= tcrit_u -> hold previous

    The very first sample is only a seed: it is neither buffered nor used as
    the previous sample for the variance filter. The decision is frozen at
    'unknown' until `n` samples have been consumed.
    """

    def __init__(
        self,
        n: int = 10,
        ewma: float = 0.1,
        tcrit_u: float = 3.2,
        tcrit_l: float = 1.0,
    ) -> None:
        self.n, self.ewma, self.tcrit_u, self.tcrit_l = check_params(n, ewma, tcrit_u, tcrit_l)
        self.cewma = 1.0 - self.ewma
        self.window = CornerWindow(self.n)
        self.reset()

    def reset(self) -> None:
        self.window.reset()
        self._filt = [0.0, 0.0, 0.0, 0.0]
        self._var = 0.0
        self._y_old = 0.0
        self._ind = Indicator.UNKNOWN
        self._count = 0

    @property
    def index(self) -> int:
        """Number of samples consumed so far (1-based index of the last one)."""
        return self._count

    @property
    def indicator(self) -> Indicator:
        return self._ind

    @property
    def data_var(self) -> float:
        return self._var

    @property
    def filtered(self) -> tuple[float, float, float, float]:
        f1, f2, f3, f4 = self._filt
        return f1, f2, f3, f4

    @property
    def warmup(self) -> bool:
        return self._count < self.n

    def _seed(self, x: float) -> StepOut:
        return {
            "index": 1,
            "data": x,
            "tstat": None,
            "ss": Indicator.UNKNOWN.value,
            "regime": Indicator.UNKNOWN.label,
            "warmup": True,
            "iread1": None,
            "iread2": None,
            "iread3": None,
            "iread4": None,
            "y1filt": None,
            "y2filt": None,
            "y3filt": None,
            "y4filt": None,
        }

    def update(self, x: Any) -> StepOut:
        pos = self._count  # 0-based index of this sample
        try:
            x_val = float(x)
        except (TypeError, ValueError):
            raise DataError(pos, f"not a number: {x!r}") from None
        if not isfinite(x_val):
            raise DataError(pos, f"not finite: {x_val!r}")

        i = pos + 1
        if i == 1:
            self._count = i
            return self._seed(x_val)

        # everything is computed into locals first; state only changes once
        # the step is known to be finite
        d = x_val - self._y_old
        var = VAR_GAIN * d * d + VAR_KEEP * self._var
        if var < VAR_FLOOR:
            var = VAR_FLOOR
        if not isfinite(var):
            raise DataError(pos, "variance estimate overflowed")

        w = self.window
        a, ca = self.ewma, self.cewma
        filt = tuple(a * y + ca * f for y, f in zip(w.corners_with(x_val), self._filt))

        t = (max(filt) - min(filt)) / sqrt(var)
        if not isfinite(t):
            raise DataError(pos, "t-statistic is not finite")
        if t > T_MAX:
            t = T_MAX

        iread = w.positions()
        w.put(x_val)
        w.advance()
        self._var = var
        self._y_old = x_val
        self._filt = list(filt)
        self._count = i

        if i >= self.n:
            prev = self._ind
            if t <= self.tcrit_l:
                self._ind = Indicator.STEADY
            elif t > self.tcrit_u:
                self._ind = Indicator.TRANSIENT
            if self._ind is not prev and logger.isEnabledFor(logging.DEBUG):
                logger.debug(json.dumps({
                    "evt": "indicator_change",
                    "index": pos,
                    "from": prev.label,
                    "to": self._ind.label,
                    "tstat": round(t, 6),
                }))

        return {
            "index": i,
            "data": x_val,
            "tstat": t,
            "ss": self._ind.value,
            "regime": self._ind.label,
            "warmup": self.warmup,
            "iread1": iread[0],
            "iread2": iread[1],
            "iread3": iread[2],
            "iread4": iread[3],
            "y1filt": filt[0],
            "y2filt": filt[1],
            "y3filt": filt[2],
            "y4filt": filt[3],
        }
