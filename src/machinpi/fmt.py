# src/machinpi/fmt.py
from __future__ import annotations

import re
from collections.abc import Iterator
from typing import TYPE_CHECKING

from machinpi.fixedpoint import FixedPointNumber

if TYPE_CHECKING:
    from machinpi.machin import PiResult

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

GROUP_HEX_DIGITS = 16


def hex_groups(number: FixedPointNumber) -> Iterator[str]:
    """One zero-padded 16-hex-digit group per base-2**64 digit."""
    for d in number.digits:
        yield f"{d:0{GROUP_HEX_DIGITS}x}"


def format_hex_dump(number: FixedPointNumber, groups_per_line: int = 4) -> str:
    """
    Render all digits as hex groups, `groups_per_line` per line:

        243f6a8885a308d3 13198a2e03707344 a4093822299f31d0 082efa98ec4e6c89
        452821e638d01377 ...
    """
    if groups_per_line < 1:
        raise ValueError(f"groups_per_line must be positive, got {groups_per_line}")
    groups = list(hex_groups(number))
    lines = [
        " ".join(groups[i:i + groups_per_line])
        for i in range(0, len(groups), groups_per_line)
    ]
    return "\n".join(lines)


def format_pi_hex(result: PiResult, max_groups: int | None = None) -> str:
    """'3.243f6a88...' with the fraction optionally shortened to max_groups digits."""
    groups = list(hex_groups(result.fraction))
    shown = groups if max_groups is None else groups[:max_groups]
    tail = "…" if len(shown) < len(groups) else ""
    return f"{result.integer_part:x}." + "".join(shown) + tail


def abbr_hex(s: str, head: int = 24, tail: int = 8, ellipsis: str = "…") -> str:
    """Abbreviate a long hex string as first<head>…last<tail>."""
    if len(s) <= head + tail + len(ellipsis):
        return s
    return f"{s[:head]}{ellipsis}{s[-tail:]}"


def format_duration(seconds: float) -> str:
    """ms if <1s; s with millis if <60s; else mm:ss.mmm (and hh:mm:ss.mmm if ≥1h)."""
    MAX_SECONDS = 60
    if seconds < 1:
        ms = round(seconds * 1000)
        return f"{ms} ms"
    if seconds < MAX_SECONDS:
        return f"{seconds:.3f} s"
    m, s = divmod(seconds, MAX_SECONDS)
    if m < MAX_SECONDS:
        return f"{int(m)}:{s:06.3f}"               # mm:ss.mmm
    h, m = divmod(int(m), MAX_SECONDS)
    return f"{h}:{m:02d}:{s:06.3f}"                # hh:mm:ss.mmm


def strip_ansi(s: str | None) -> str:
    """Return s with ANSI escape sequences removed."""
    return "" if s is None else ANSI_RE.sub("", s)


def visible_len(s: str | None) -> int:
    """Printable length (without ANSI)."""
    return len(strip_ansi(s))
