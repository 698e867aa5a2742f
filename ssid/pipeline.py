# ssid/pipeline.py
from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any

import pandas as pd

from ssid.config import load_config
from ssid.detect.fourpoint import FourPointFilter, check_params, coerce_stp
from ssid.errors import ConfigurationError
from ssid.types import COLUMNS, Indicator, OutputRecord

logger = logging.getLogger("ssid")

DEFAULTS: dict[str, Any] = {
    "tcrit_u": 3.2,
    "tcrit_l": 1.0,
    "n": 10,
    "ewma": 0.1,
    "stp": 1,
}

ProgressHook = Callable[[float], Any]


def _blank_row(x: float) -> OutputRecord:
    return {
        "data": x,
        "tstat": None,
        "ss": Indicator.UNKNOWN.value,
        "iread1": None,
        "iread2": None,
        "iread3": None,
        "iread4": None,
        "y1filt": None,
        "y2filt": None,
        "y3filt": None,
        "y4filt": None,
    }


def process(
    samples: Sequence[float],
    tcrit_u: float,
    tcrit_l: float,
    n: int,
    ewma: float,
    stp: int = 1,
    progress_hook: ProgressHook | None = None,
) -> list[OutputRecord]:
    """
    Run the four-point filter over a whole series.

    Returns one record per sample, in input order. Row 0 is the seed and keeps
    its raw value only. Each later step writes its t-statistic and indicator
    into its own row and the next `stp - 1` rows (bounded by the series
    length); the following steps overwrite those rows again.
    """
    n, ewma, tcrit_u, tcrit_l = check_params(n, ewma, tcrit_u, tcrit_l)
    stp = coerce_stp(stp)
    if samples is None or len(samples) == 0:
        raise ConfigurationError("samples must be a non-empty sequence")

    total = len(samples)
    filt = FourPointFilter(n=n, ewma=ewma, tcrit_u=tcrit_u, tcrit_l=tcrit_l)
    rows: list[OutputRecord] = [_blank_row(float("nan")) for _ in range(total)]

    logger.info(json.dumps({
        "evt": "run_start",
        "n_points": total,
        "n": n,
        "ewma": ewma,
        "tcrit_u": tcrit_u,
        "tcrit_l": tcrit_l,
        "stp": stp,
    }))

    for k, x in enumerate(samples):
        step = filt.update(x)
        row = rows[k]
        row["data"] = step["data"]
        if k == 0:
            continue

        for c in COLUMNS[3:]:
            row[c] = step[c]  # type: ignore[literal-required]

        # write-ahead into the following rows; their own step overwrites them
        for kk in range(k, min(k + stp, total)):
            rows[kk]["tstat"] = step["tstat"]
            rows[kk]["ss"] = step["ss"]

        if progress_hook is not None:
            progress_hook((k + 1) / total)

    counts = {ind.label: 0 for ind in Indicator}
    for r in rows:
        counts[Indicator.from_value(r["ss"]).label] += 1
    logger.info(json.dumps({"evt": "run_done", "n_points": total, "counts": counts}))
    return rows


def to_frame(records: Sequence[OutputRecord]) -> pd.DataFrame:
    """Output table with the canonical column order; missing values become NaN/<NA>."""
    df = pd.DataFrame.from_records(list(records), columns=list(COLUMNS))
    dtypes = {c: ("Int64" if c.startswith("iread") else "float64") for c in COLUMNS}
    return df.astype(dtypes)


class SteadyStateDetector:
    """
    Config-driven front end for `process`.

    Parameter resolution: explicit keyword > cfg key > built-in default.
    Parameters are validated here, once, before any data is seen.
    """

    def __init__(
        self,
        cfg: dict[str, Any] | None = None,
        *,
        tcrit_u: float | None = None,
        tcrit_l: float | None = None,
        n: int | None = None,
        ewma: float | None = None,
        stp: int | None = None,
    ) -> None:
        self.cfg = cfg if cfg is not None else load_config()
        given = {"tcrit_u": tcrit_u, "tcrit_l": tcrit_l, "n": n, "ewma": ewma, "stp": stp}
        p = {k: (v if v is not None else self.cfg.get(k, DEFAULTS[k])) for k, v in given.items()}

        self.n, self.ewma, self.tcrit_u, self.tcrit_l = check_params(
            p["n"], p["ewma"], p["tcrit_u"], p["tcrit_l"]
        )
        self.stp = coerce_stp(p["stp"])

    @property
    def params(self) -> dict[str, Any]:
        return {
            "tcrit_u": self.tcrit_u,
            "tcrit_l": self.tcrit_l,
            "n": self.n,
            "ewma": self.ewma,
            "stp": self.stp,
        }

    def run(
        self, samples: Sequence[float], progress_hook: ProgressHook | None = None
    ) -> list[OutputRecord]:
        return process(samples, progress_hook=progress_hook, **self.params)

    def run_frame(
        self, samples: Sequence[float], progress_hook: ProgressHook | None = None
    ) -> pd.DataFrame:
        return to_frame(self.run(samples, progress_hook))

    def stream(self) -> FourPointFilter:
        """Fresh streaming filter with this detector's parameters."""
        return FourPointFilter(n=self.n, ewma=self.ewma, tcrit_u=self.tcrit_u, tcrit_l=self.tcrit_l)
