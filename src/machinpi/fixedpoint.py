# src/machinpi/fixedpoint.py
"""
Fixed-width fixed-point fractions in base 2**64.

A FixedPointNumber holds a value in [0, 1) as `width` unsigned 64-bit digits,
most significant first:

    value = sum(digits[i] * 2**(-64 * (i + 1)) for i in range(width))

Every operation mutates the number in place and keeps `leading_zeros` (the
index of the first non-zero digit, or `width` for zero) exact, so that later
operations can skip the high-order digits that are already known to be zero.
Digits are plain Python ints; each step keeps intermediates below 2**128 and
masks back to 64 bits.
"""

from __future__ import annotations

from collections.abc import Iterable
from fractions import Fraction
from functools import total_ordering

DIGIT_BITS = 64
BASE = 1 << DIGIT_BITS
MASK = BASE - 1
MAX_DIVISOR = BASE              # divisors up to and including 2**64
DEFAULT_DIGITS = 10_000         # ~640,000 bits of fraction


class FixedPointError(ArithmeticError):
    """Base class for arithmetic that would leave a FixedPointNumber invalid."""


class CarryOverflowError(FixedPointError):
    """A carry left digit 0: the result is not below 1."""


class NegativeResultError(FixedPointError):
    """Subtraction would produce a negative value."""


class StaleCacheError(FixedPointError):
    """The leading-zero cache or a digit no longer matches the stored digits."""


def _require_int(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def _check_divisor(d: int) -> None:
    _require_int("divisor", d)
    if d == 0:
        raise ZeroDivisionError("division of a fixed-point number by zero")
    if not 0 < d <= MAX_DIVISOR:
        raise ValueError(f"divisor must be in [1, 2**64], got {d}")


@total_ordering
class FixedPointNumber:
    """
    A non-negative fraction with `width` base-2**64 digits.

    Construction gives exactly zero. Arithmetic operators mutate self:

        n = FixedPointNumber.reciprocal(5, width=8)   # 1/5
        n /= 25                                       # 1/125
        n.scale(4)                                    # 4/125
    """

    __slots__ = ("digits", "leading_zeros", "width")
    __hash__ = None  # mutable

    def __init__(self, width: int = DEFAULT_DIGITS):
        _require_int("width", width)
        if width < 1:
            raise ValueError(f"width must be at least 1 digit, got {width}")
        self.width = width
        self.digits: list[int] = [0] * width
        self.leading_zeros = width

    # --- constructors ---------------------------------------------------------

    @classmethod
    def reciprocal(cls, x: int, width: int = DEFAULT_DIGITS) -> FixedPointNumber:
        num = cls(width)
        num.set_reciprocal(x)
        return num

    @classmethod
    def from_digits(cls, digits: Iterable[int]) -> FixedPointNumber:
        values = list(digits)
        num = cls(len(values))
        for i, d in enumerate(values):
            _require_int(f"digit {i}", d)
            if not 0 <= d <= MASK:
                raise ValueError(f"digit {i} out of range: {d}")
        num.digits = values
        num.leading_zeros = num.scan_leading_zeros()
        return num

    @classmethod
    def from_int(cls, value: int, width: int) -> FixedPointNumber:
        """Build the number whose digits spell `value`, i.e. value / 2**(64*width)."""
        _require_int("value", value)
        if not 0 <= value < 1 << (DIGIT_BITS * width):
            raise ValueError(f"value does not fit in {width} digit(s)")
        raw = value.to_bytes(8 * width, "big")
        return cls.from_digits(int.from_bytes(raw[8 * i:8 * i + 8], "big") for i in range(width))

    def copy(self) -> FixedPointNumber:
        clone = FixedPointNumber.__new__(FixedPointNumber)
        clone.width = self.width
        clone.digits = self.digits[:]
        clone.leading_zeros = self.leading_zeros
        return clone

    __copy__ = copy

    # --- conversions ----------------------------------------------------------

    def to_int(self) -> int:
        """The value scaled by 2**(64*width), as an exact integer."""
        return int.from_bytes(b"".join(d.to_bytes(8, "big") for d in self.digits), "big")

    def to_fraction(self) -> Fraction:
        return Fraction(self.to_int(), 1 << (DIGIT_BITS * self.width))

    # --- queries --------------------------------------------------------------

    def is_zero(self) -> bool:
        return self.leading_zeros == self.width

    def __bool__(self) -> bool:
        return not self.is_zero()

    def scan_leading_zeros(self, start: int = 0) -> int:
        """Index of the first non-zero digit at or after `start` (width if none)."""
        digits = self.digits
        for i in range(start, self.width):
            if digits[i]:
                return i
        return self.width

    def validate(self) -> None:
        """Recompute the cache from the digits and raise StaleCacheError on mismatch."""
        if len(self.digits) != self.width:
            raise StaleCacheError(f"expected {self.width} digits, found {len(self.digits)}")
        for i, d in enumerate(self.digits):
            if not 0 <= d <= MASK:
                raise StaleCacheError(f"digit {i} out of range: {d}")
        actual = self.scan_leading_zeros()
        if actual != self.leading_zeros:
            raise StaleCacheError(f"leading_zeros is {self.leading_zeros}, digits say {actual}")

    def _check_width(self, other: FixedPointNumber) -> None:
        if not isinstance(other, FixedPointNumber):
            raise TypeError(f"expected FixedPointNumber, got {type(other).__name__}")
        if other.width != self.width:
            raise ValueError(f"width mismatch: {self.width} vs {other.width}")

    def _compare(self, other: FixedPointNumber) -> int:
        # More leading zeros means smaller; only a tie needs a digit scan.
        a, b = self.leading_zeros, other.leading_zeros
        if a != b:
            return -1 if a > b else 1
        mine, theirs = self.digits, other.digits
        for i in range(a, self.width):
            x, y = mine[i], theirs[i]
            if x != y:
                return -1 if x < y else 1
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedPointNumber):
            return NotImplemented
        return self.width == other.width and self.digits == other.digits

    def __lt__(self, other: FixedPointNumber) -> bool:
        if not isinstance(other, FixedPointNumber):
            return NotImplemented
        self._check_width(other)
        return self._compare(other) < 0

    def __repr__(self) -> str:
        head = " ".join(f"{d:016x}" for d in self.digits[:2])
        more = " ..." if self.width > 2 else ""
        return f"FixedPointNumber(width={self.width}, leading_zeros={self.leading_zeros}, digits=[{head}{more}])"

    # --- mutators -------------------------------------------------------------

    def set_zero(self) -> None:
        digits = self.digits
        for i in range(self.leading_zeros, self.width):
            digits[i] = 0
        self.leading_zeros = self.width

    def set_reciprocal(self, x: int) -> None:
        """Long division of 1 by x, one base-2**64 digit at a time."""
        _require_int("x", x)
        if not 2 <= x < BASE:
            raise ValueError(f"reciprocal argument must be in [2, 2**64), got {x}")
        digits = self.digits
        rem = 1
        for i in range(self.width):
            if not rem:
                digits[i:] = [0] * (self.width - i)
                break
            digits[i], rem = divmod(rem << DIGIT_BITS, x)
        self.leading_zeros = self.scan_leading_zeros()

    def scale(self, k: int, *, allow_overflow: bool = False) -> int:
        """
        Multiply in place by a small integer k and return the carry out of
        digit 0, i.e. the integer part of value * k.

        The number always keeps the fractional part. A non-zero carry raises
        CarryOverflowError unless allow_overflow is set.
        """
        _require_int("k", k)
        if not 0 < k < BASE:
            raise ValueError(f"scale factor must be in [1, 2**64), got {k}")
        digits = self.digits
        lz = self.leading_zeros
        carry = 0
        for i in range(self.width - 1, lz - 1, -1):
            carry += k * digits[i]
            digits[i] = carry & MASK
            carry >>= DIGIT_BITS
        start = lz
        if carry and lz:
            start = lz - 1
            digits[start] = carry
            carry = 0
        self.leading_zeros = self.scan_leading_zeros(start)
        if carry and not allow_overflow:
            raise CarryOverflowError(f"scaling by {k} carried {carry} out of the most significant digit")
        return carry

    def divide_from(self, source: FixedPointNumber, d: int) -> FixedPointNumber:
        """
        self = source / d, truncated. Digits of source before its first
        non-zero digit are not visited. source may be self.
        """
        self._check_width(source)
        _check_divisor(d)
        digits = self.digits
        src = source.digits
        start = source.leading_zeros
        for i in range(self.leading_zeros, start):
            digits[i] = 0
        rem = 0
        for i in range(start, self.width):
            digits[i], rem = divmod((rem << DIGIT_BITS) | src[i], d)
        self.leading_zeros = self.scan_leading_zeros(start)
        return self

    def __itruediv__(self, d: int) -> FixedPointNumber:
        return self.divide_from(self, d)

    def __iadd__(self, rhs: FixedPointNumber) -> FixedPointNumber:
        self._check_width(rhs)
        digits = self.digits
        other = rhs.digits
        low = rhs.leading_zeros
        start = min(self.leading_zeros, low)
        carry = 0
        for i in range(self.width - 1, low - 1, -1):
            carry += digits[i] + other[i]
            digits[i] = carry & MASK
            carry >>= DIGIT_BITS
        i = low - 1
        while carry and i >= 0:
            carry += digits[i]
            digits[i] = carry & MASK
            carry >>= DIGIT_BITS
            i -= 1
        self.leading_zeros = self.scan_leading_zeros(max(0, start - 1))
        if carry:
            raise CarryOverflowError("sum is not below 1")
        return self

    def __isub__(self, rhs: FixedPointNumber) -> FixedPointNumber:
        self._check_width(rhs)
        if self._compare(rhs) < 0:
            raise NegativeResultError("subtrahend is larger than the minuend")
        low = rhs.leading_zeros
        if low == self.width:
            return self
        digits = self.digits
        other = rhs.digits
        # two's complement: self + ~rhs + 1
        carry = 1
        for i in range(self.width - 1, low - 1, -1):
            carry += digits[i] + (other[i] ^ MASK)
            digits[i] = carry & MASK
            carry >>= DIGIT_BITS
        # a zero carry is a borrow into the digits above rhs's first non-zero one
        i = low - 1
        while not carry and i >= 0:
            carry = digits[i] + MASK
            digits[i] = carry & MASK
            carry >>= DIGIT_BITS
            i -= 1
        self.leading_zeros = self.scan_leading_zeros(self.leading_zeros)
        return self
