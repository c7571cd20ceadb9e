# tests/test_fmt.py
from __future__ import annotations

import pytest

from machinpi.fixedpoint import FixedPointNumber
from machinpi.fmt import (
    abbr_hex,
    format_duration,
    format_hex_dump,
    format_pi_hex,
    hex_groups,
    strip_ansi,
    visible_len,
)
from machinpi.machin import PiResult

PI_DIGITS = [0x243F6A8885A308D3, 0x13198A2E03707344, 0xA4093822299F31D0, 0x082EFA98EC4E6C89, 0x452821E638D01377]


def test_hex_groups_are_zero_padded():
    n = FixedPointNumber.from_digits([0, 1, 0xABC])
    assert list(hex_groups(n)) == ["0000000000000000", "0000000000000001", "0000000000000abc"]


def test_hex_dump_four_groups_per_line():
    dump = format_hex_dump(FixedPointNumber.from_digits(PI_DIGITS))
    lines = dump.splitlines()
    assert lines == [
        "243f6a8885a308d3 13198a2e03707344 a4093822299f31d0 082efa98ec4e6c89",
        "452821e638d01377",
    ]


def test_hex_dump_custom_line_length():
    dump = format_hex_dump(FixedPointNumber.from_digits(PI_DIGITS), groups_per_line=2)
    assert len(dump.splitlines()) == 3
    with pytest.raises(ValueError):
        format_hex_dump(FixedPointNumber(1), groups_per_line=0)


def test_pi_hex_with_integer_part():
    result = PiResult(integer_part=3, fraction=FixedPointNumber.from_digits(PI_DIGITS), stats=(), elapsed=0.0)
    assert format_pi_hex(result).startswith("3.243f6a8885a308d313198a2e")
    assert format_pi_hex(result, max_groups=1) == "3.243f6a8885a308d3…"
    assert not format_pi_hex(result, max_groups=5).endswith("…")


def test_abbr_hex():
    assert abbr_hex("abc") == "abc"
    s = "0123456789abcdef" * 4
    out = abbr_hex(s, head=4, tail=4)
    assert out == "0123…cdef"


@pytest.mark.parametrize("seconds,expected", [
    (0.0123, "12 ms"),
    (1.5, "1.500 s"),
    (75.25, "1:15.250"),
    (3725.5, "1:02:05.500"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_strip_ansi():
    s = "\x1b[31mred\x1b[0m"
    assert strip_ansi(s) == "red"
    assert visible_len(s) == 3
    assert strip_ansi(None) == ""
