# ssid/window.py
from __future__ import annotations

from math import sqrt

GOLDEN = (sqrt(5.0) - 1.0) / 2.0  # ~0.618


class CornerWindow:
    """
    Circular buffer of the last `n` samples read through four cursors:

      - cursor 1: write cursor (most recent sample)
      - cursor 2: starts at int(g * n)
      - cursor 3: starts at int((1 - g) * n)
      - cursor 4: starts at n (oldest slot, overwritten next)

    Cursors are 1-indexed and all move together, so the offsets between them
    never change. Storage is allocated once and never resized.
    """

    def __init__(self, n: int) -> None:
        self.n = int(n)
        self.buf: list[float] = [0.0] * self.n
        self._start = [1, int(GOLDEN * self.n), int((1.0 - GOLDEN) * self.n), self.n]
        self.cursors = list(self._start)

    def reset(self) -> None:
        self.buf = [0.0] * self.n
        self.cursors = list(self._start)

    def put(self, x: float) -> None:
        self.buf[self.cursors[0] - 1] = float(x)

    def corners(self) -> tuple[float, float, float, float]:
        b = self.buf
        c1, c2, c3, c4 = self.cursors
        return b[c1 - 1], b[c2 - 1], b[c3 - 1], b[c4 - 1]

    def corners_with(self, x: float) -> tuple[float, float, float, float]:
        """Corners as they would read after put(x), without writing."""
        b = self.buf
        c1 = self.cursors[0]
        v1, v2, v3, v4 = (float(x) if c == c1 else b[c - 1] for c in self.cursors)
        return v1, v2, v3, v4

    def positions(self) -> tuple[int, int, int, int]:
        c1, c2, c3, c4 = self.cursors
        return c1, c2, c3, c4

    def advance(self) -> None:
        n = self.n
        for k in range(4):
            c = self.cursors[k] + 1
            self.cursors[k] = 1 if c > n else c
