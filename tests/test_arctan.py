# tests/test_arctan.py
"""
Tests for the arctan(1/x) series evaluator.

The series is mirrored on plain scaled integers (floor division reproduces
the digit-wise long division exactly), so the evaluator's digits can be
compared bit for bit; an MPFR value from gmpy2 checks the mathematics.
"""

from __future__ import annotations

import pytest

from machinpi.arctan import ArctanSeriesEvaluator, SeriesStats, arctan_inverse
from machinpi.fixedpoint import BASE, DIGIT_BITS
from machinpi.reference import ULPS_PER_TERM, arctan_reference, ulp_distance

# ---------- helpers -----------------------------------------------------------


def _mirror_series(x: int, width: int) -> tuple[int, int]:
    """Same recurrence on the value scaled by 2**(64*width); returns (scaled result, passes)."""
    result = BASE ** width // x
    term = result
    x2 = x * x
    denom = 1
    passes = 0
    while term:
        denom += 2
        term //= x2
        result -= term // denom
        denom += 2
        term //= x2
        result += term // denom
        passes += 1
    return result, passes


def _expected_passes(x: int, width: int) -> int:
    """
    The term after j divisions by x*x is floor(2**bits / x**(2j+1)); it is
    zero from the first j with x**(2j+1) > 2**bits, and each pass divides twice.
    """
    limit = 1 << (DIGIT_BITS * width)
    j = 0
    while x ** (2 * j + 1) <= limit:
        j += 1
    return (j + 1) // 2


class _Recorder:
    def __init__(self):
        self.updates: list[tuple[int, str]] = []
        self.finished = False

    def update(self, done: int, label: str = ""):
        self.updates.append((done, label))

    def done(self):
        self.finished = True


SERIES_CASES = [(2, 4), (3, 4), (5, 4), (5, 16), (7, 8), (239, 4), (239, 16), (1000, 8)]
SERIES_IDS = [f"x={x}_width={w}" for x, w in SERIES_CASES]


# ---------- tests -------------------------------------------------------------


@pytest.mark.parametrize("x,width", SERIES_CASES, ids=SERIES_IDS)
def test_series_matches_integer_mirror_exactly(x, width):
    ev = ArctanSeriesEvaluator(width)
    got = ev.evaluate(x)
    expected, passes = _mirror_series(x, width)
    assert got.to_int() == expected
    assert ev.last_stats.passes == passes
    got.validate()


@pytest.mark.parametrize("x,width", SERIES_CASES, ids=SERIES_IDS)
def test_series_is_close_to_mpfr_arctan(x, width):
    ev = ArctanSeriesEvaluator(width)
    got = ev.evaluate(x)
    ref = arctan_reference(x, width)
    assert ulp_distance(got, ref) <= ULPS_PER_TERM * ev.last_stats.terms


@pytest.mark.parametrize("x,width", SERIES_CASES, ids=SERIES_IDS)
def test_termination_pass_count(x, width):
    ev = ArctanSeriesEvaluator(width)
    ev.evaluate(x)
    assert ev.last_stats.passes == _expected_passes(x, width)
    assert ev.last_stats.terms == 1 + 2 * ev.last_stats.passes


def test_pass_count_falls_as_x_grows():
    width = 8
    ev = ArctanSeriesEvaluator(width)
    passes = []
    for x in (2, 3, 5, 10, 57, 239, 5000):
        ev.evaluate(x)
        passes.append(ev.last_stats.passes)
    assert passes == sorted(passes, reverse=True)
    assert passes[0] > passes[2] > passes[5] > passes[-1]


def test_last_stats_record():
    ev = ArctanSeriesEvaluator(4)
    assert ev.last_stats is None
    ev.evaluate(5)
    stats = ev.last_stats
    assert isinstance(stats, SeriesStats)
    assert stats.x == 5
    assert stats.width == 4
    assert stats.label == "arctan(1/5)"
    assert stats.elapsed >= 0


def test_largest_argument_finishes_in_one_pass():
    ev = ArctanSeriesEvaluator(1)
    got = ev.evaluate(2**32)
    assert got.digits == [2**32]
    assert ev.last_stats.passes == 1


def test_progress_sees_every_pass():
    rec = _Recorder()
    ev = ArctanSeriesEvaluator(4, progress=rec)
    ev.evaluate(5)
    assert len(rec.updates) == ev.last_stats.passes
    done = [d for d, _ in rec.updates]
    assert done == sorted(done)
    assert done[-1] == 4
    assert {label for _, label in rec.updates} == {"arctan(1/5)"}
    assert rec.finished


def test_invariant_checks_pass():
    ev = ArctanSeriesEvaluator(4, check_invariants=True)
    assert ev.evaluate(5) == arctan_inverse(5, 4)


@pytest.mark.parametrize("x", [0, 1, -5, 2**32 + 1])
def test_rejects_out_of_range_argument(x):
    with pytest.raises(ValueError):
        ArctanSeriesEvaluator(2).evaluate(x)


@pytest.mark.parametrize("x", [5.0, True, "5"])
def test_rejects_non_int_argument(x):
    with pytest.raises(TypeError):
        ArctanSeriesEvaluator(2).evaluate(x)


def test_rejects_bad_width():
    with pytest.raises(ValueError):
        ArctanSeriesEvaluator(0)
