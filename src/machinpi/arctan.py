# src/machinpi/arctan.py
"""
arctan(1/x) by its Taylor series,

    arctan(1/x) = sum((-1)**k / ((2k + 1) * x**(2k + 1)) for k >= 0)

evaluated on FixedPointNumber registers. The running term x**-(2k+1) is
obtained by dividing the previous one by x*x, and the loop stops when that
term has been divided down to exactly zero at the fixed width.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from machinpi.fixedpoint import DEFAULT_DIGITS, MAX_DIVISOR, FixedPointNumber
from machinpi.progress import Progress


@dataclass(frozen=True)
class SeriesStats:
    x: int
    width: int
    passes: int        # loop bodies; each consumes a negative and a positive term
    terms: int         # series terms evaluated, including 1/x
    elapsed: float     # seconds

    @property
    def label(self) -> str:
        return f"arctan(1/{self.x})"


class ArctanSeriesEvaluator:
    def __init__(self, width: int = DEFAULT_DIGITS, *,
                 progress: Progress | None = None, check_invariants: bool = False):
        if width < 1:
            raise ValueError(f"width must be at least 1 digit, got {width}")
        self.width = width
        self.progress = progress
        self.check_invariants = check_invariants
        self.last_stats: SeriesStats | None = None

    def evaluate(self, x: int) -> FixedPointNumber:
        """Return arctan(1/x) truncated to `width` digits."""
        if isinstance(x, bool) or not isinstance(x, int):
            raise TypeError(f"x must be an int, got {type(x).__name__}")
        if x < 2 or x * x > MAX_DIVISOR:
            raise ValueError(f"x must satisfy 2 <= x and x*x <= 2**64, got {x}")

        t0 = time.perf_counter()
        label = f"arctan(1/{x})"
        result = FixedPointNumber.reciprocal(x, self.width)
        term = result.copy()
        tmp = FixedPointNumber(self.width)
        x2 = x * x
        denom = 1
        passes = 0

        while not term.is_zero():
            denom += 2
            term /= x2
            tmp.divide_from(term, denom)
            result -= tmp

            denom += 2
            term /= x2
            tmp.divide_from(term, denom)
            result += tmp

            passes += 1
            if self.check_invariants:
                for reg in (result, term, tmp):
                    reg.validate()
            if self.progress is not None:
                self.progress.update(term.leading_zeros, label)

        if self.progress is not None:
            self.progress.done()

        self.last_stats = SeriesStats(
            x=x,
            width=self.width,
            passes=passes,
            terms=1 + 2 * passes,
            elapsed=time.perf_counter() - t0,
        )
        return result


def arctan_inverse(x: int, width: int = DEFAULT_DIGITS) -> FixedPointNumber:
    return ArctanSeriesEvaluator(width).evaluate(x)
