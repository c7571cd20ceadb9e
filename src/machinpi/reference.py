# src/machinpi/reference.py
"""
Independent reference values for checking the series arithmetic.

Nothing here uses FixedPointNumber arithmetic: pi and arctan come from MPFR
(gmpy2) or from sympy's own evaluation and are only packed into a
FixedPointNumber at the end, so the comparison is meaningful.
"""

from __future__ import annotations

from dataclasses import dataclass

import gmpy2
import sympy

from machinpi.fixedpoint import DIGIT_BITS, FixedPointNumber
from machinpi.machin import MACHIN_FACTOR, PI_FACTOR, PiResult

GUARD_BITS = 64
ULPS_PER_TERM = 3   # reciprocal/term/correction truncation, one ulp each at most
BACKENDS = ("gmpy2", "sympy")


@dataclass(frozen=True)
class Verification:
    matching_bits: int
    ulps: int
    bound: int
    integer_part_ok: bool

    @property
    def ok(self) -> bool:
        return self.integer_part_ok and self.ulps <= self.bound


def _mpfr_scaled(fn, bits: int) -> int:
    """floor(fn() * 2**bits) with fn evaluated at bits + GUARD_BITS of precision."""
    saved = gmpy2.get_context()
    gmpy2.set_context(gmpy2.context(precision=bits + GUARD_BITS))
    try:
        value = fn()
        return int(gmpy2.floor(gmpy2.mul_2exp(value, bits)))
    finally:
        gmpy2.set_context(saved)


def _sympy_scaled_pi(bits: int) -> int:
    """
    floor((pi - 3) * 2**bits) from a decimal evaluation of pi.

    sympy.floor() on the symbolic product gives up past a few hundred bits,
    so pi is evaluated to enough decimal places first and the rest is exact
    rational arithmetic on that Float.
    """
    dps = (bits + GUARD_BITS) * 30103 // 100000 + 10  # log10(2) ~ 0.30103
    approx = sympy.Rational(sympy.pi.evalf(n=dps)) - 3
    return int(sympy.floor(approx * sympy.Integer(2) ** bits))


def pi_reference(width: int, *, backend: str = "gmpy2") -> FixedPointNumber:
    """pi - 3 truncated to `width` digits."""
    bits = width * DIGIT_BITS
    if backend == "gmpy2":
        scaled = _mpfr_scaled(lambda: gmpy2.const_pi() - 3, bits)
    elif backend == "sympy":
        scaled = _sympy_scaled_pi(bits)
    else:
        raise ValueError(f"unknown reference backend {backend!r}; expected one of {', '.join(BACKENDS)}")
    return FixedPointNumber.from_int(scaled, width)


def arctan_reference(x: int, width: int) -> FixedPointNumber:
    """arctan(1/x) truncated to `width` digits."""
    if x < 1:
        raise ValueError(f"x must be positive, got {x}")
    bits = width * DIGIT_BITS
    scaled = _mpfr_scaled(lambda: gmpy2.atan(gmpy2.mpfr(1) / x), bits)
    return FixedPointNumber.from_int(scaled, width)


def ulp_distance(a: FixedPointNumber, b: FixedPointNumber) -> int:
    """|a - b| in units of the last digit."""
    if a.width != b.width:
        raise ValueError(f"width mismatch: {a.width} vs {b.width}")
    return abs(a.to_int() - b.to_int())


def matching_bits(a: FixedPointNumber, b: FixedPointNumber) -> int:
    """Number of leading fraction bits on which a and b agree."""
    if a.width != b.width:
        raise ValueError(f"width mismatch: {a.width} vs {b.width}")
    bits = a.width * DIGIT_BITS
    diff = a.to_int() ^ b.to_int()
    return bits - diff.bit_length()


def error_bound(result: PiResult) -> int:
    """
    Worst-case truncation error of compute_pi() in ulps.

    Each series result is off by at most ULPS_PER_TERM per term; the first is
    scaled by MACHIN_FACTOR, the difference by PI_FACTOR, plus one ulp for
    the truncated reference itself.
    """
    small, large = result.stats
    per_series = MACHIN_FACTOR * ULPS_PER_TERM * small.terms + ULPS_PER_TERM * large.terms
    return PI_FACTOR * per_series + 1


def verify(result: PiResult, *, backend: str = "gmpy2") -> Verification:
    ref = pi_reference(result.width, backend=backend)
    return Verification(
        matching_bits=matching_bits(result.fraction, ref),
        ulps=ulp_distance(result.fraction, ref),
        bound=error_bound(result),
        integer_part_ok=result.integer_part == 3,
    )
