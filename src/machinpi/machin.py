# src/machinpi/machin.py
"""
pi from Machin's formula, pi/4 = 4*arctan(1/5) - arctan(1/239).

The two series results are combined on the fixed-point registers:

    a  = arctan(1/5)
    a *= 4
    a -= arctan(1/239)      # pi/4, still below 1
    a *= 4                  # pi; the integer part 3 is carried out of digit 0

so the returned fraction holds pi - 3 and the carry is kept as integer_part.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from machinpi.arctan import ArctanSeriesEvaluator, SeriesStats
from machinpi.fixedpoint import DEFAULT_DIGITS, DIGIT_BITS, FixedPointNumber

MACHIN_ARGS = (5, 239)
MACHIN_FACTOR = 4   # coefficient of arctan(1/5)
PI_FACTOR = 4       # pi = 4 * (pi/4)


@dataclass(frozen=True)
class PiResult:
    integer_part: int
    fraction: FixedPointNumber
    stats: tuple[SeriesStats, ...]
    elapsed: float

    @property
    def width(self) -> int:
        return self.fraction.width

    @property
    def bits(self) -> int:
        return self.width * DIGIT_BITS

    @property
    def terms(self) -> int:
        return sum(s.terms for s in self.stats)


def compute_pi(width: int = DEFAULT_DIGITS, *, evaluator: ArctanSeriesEvaluator | None = None) -> PiResult:
    if evaluator is None:
        evaluator = ArctanSeriesEvaluator(width)
    elif evaluator.width != width:
        raise ValueError(f"evaluator width {evaluator.width} does not match requested width {width}")

    t0 = time.perf_counter()
    small, large = MACHIN_ARGS

    acc = evaluator.evaluate(small)
    first = evaluator.last_stats
    acc.scale(MACHIN_FACTOR)

    acc -= evaluator.evaluate(large)
    second = evaluator.last_stats

    integer_part = acc.scale(PI_FACTOR, allow_overflow=True)

    return PiResult(
        integer_part=integer_part,
        fraction=acc,
        stats=(first, second),
        elapsed=time.perf_counter() - t0,
    )
