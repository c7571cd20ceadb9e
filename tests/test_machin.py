# tests/test_machin.py
"""
End-to-end: pi from Machin's formula against the known hexadecimal expansion
and against independent reference values.
"""

from __future__ import annotations

import pytest

from machinpi.arctan import ArctanSeriesEvaluator
from machinpi.fixedpoint import BASE, MASK, FixedPointNumber
from machinpi.machin import MACHIN_ARGS, PiResult, compute_pi
from machinpi.reference import (
    error_bound,
    matching_bits,
    pi_reference,
    ulp_distance,
    verify,
)

# ---------- helpers -----------------------------------------------------------

# First 256 bits of the fractional part of pi (pi = 3.243f6a88...)
PI_FRACTION_HEX = [
    0x243F6A8885A308D3,
    0x13198A2E03707344,
    0xA4093822299F31D0,
    0x082EFA98EC4E6C89,
]


def _mirror_arctan(x: int, width: int) -> int:
    result = BASE ** width // x
    term = result
    x2 = x * x
    denom = 1
    while term:
        denom += 2
        term //= x2
        result -= term // denom
        denom += 2
        term //= x2
        result += term // denom
    return result


def _mirror_pi(width: int) -> tuple[int, int]:
    """(integer part, scaled fraction) with the same operation order on plain ints."""
    one = BASE ** width
    acc = 4 * _mirror_arctan(5, width)
    acc -= _mirror_arctan(239, width)
    acc *= 4
    return acc // one, acc % one


@pytest.fixture(scope="module")
def pi4() -> PiResult:
    return compute_pi(4)


# ---------- tests -------------------------------------------------------------


def test_integer_part_is_three(pi4):
    assert pi4.integer_part == 3


def test_leading_digits_match_known_expansion(pi4):
    assert pi4.fraction.digits[:3] == PI_FRACTION_HEX[:3]


def test_last_digit_within_truncation_error(pi4):
    known = FixedPointNumber.from_digits(PI_FRACTION_HEX)
    assert ulp_distance(pi4.fraction, known) <= error_bound(pi4)
    assert matching_bits(pi4.fraction, known) > 3 * 64


def test_result_matches_integer_mirror_exactly():
    for width in (1, 2, 4, 9):
        got = compute_pi(width)
        integer_part, fraction = _mirror_pi(width)
        assert got.integer_part == integer_part
        assert got.fraction.to_int() == fraction
        got.fraction.validate()


def test_result_metadata(pi4):
    assert pi4.width == 4
    assert pi4.bits == 256
    assert [s.x for s in pi4.stats] == list(MACHIN_ARGS)
    assert pi4.terms == sum(s.terms for s in pi4.stats)
    assert pi4.stats[0].passes > pi4.stats[1].passes
    assert pi4.elapsed >= 0


@pytest.mark.parametrize("backend", ["gmpy2", "sympy"])
def test_reference_pi_matches_known_expansion(backend):
    assert pi_reference(4, backend=backend).digits == PI_FRACTION_HEX


@pytest.mark.parametrize("width", [8, 24, 64])
def test_reference_backends_agree_on_wider_value(width):
    assert pi_reference(width, backend="gmpy2") == pi_reference(width, backend="sympy")


def test_unknown_backend():
    with pytest.raises(ValueError):
        pi_reference(2, backend="abacus")


@pytest.mark.parametrize("width", [1, 4, 32])
def test_verify_accepts_computed_pi(width):
    result = compute_pi(width)
    v = verify(result)
    assert v.ok
    assert v.integer_part_ok
    assert v.ulps <= v.bound
    assert 0 < v.matching_bits <= width * 64


def test_verify_flags_a_corrupted_digit(pi4):
    broken = pi4.fraction.copy()
    broken.digits[1] ^= 1 << 40
    bad = PiResult(integer_part=3, fraction=broken, stats=pi4.stats, elapsed=0.0)
    v = verify(bad)
    assert not v.ok
    assert v.matching_bits < 2 * 64


def test_verify_flags_wrong_integer_part(pi4):
    bad = PiResult(integer_part=2, fraction=pi4.fraction, stats=pi4.stats, elapsed=0.0)
    assert not verify(bad).ok


def test_explicit_evaluator_is_used():
    ev = ArctanSeriesEvaluator(2)
    result = compute_pi(2, evaluator=ev)
    assert ev.last_stats is result.stats[1]


def test_evaluator_width_must_match():
    with pytest.raises(ValueError):
        compute_pi(4, evaluator=ArctanSeriesEvaluator(2))


def test_fraction_digits_are_in_range(pi4):
    assert all(0 <= d <= MASK for d in pi4.fraction.digits)
