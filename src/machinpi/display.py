# src/machinpi/display.py
from __future__ import annotations

from typing import TYPE_CHECKING

from colorama import Fore, Style

from machinpi.config import list_profiles_with_descriptions, read_current_profile
from machinpi.fmt import abbr_hex, format_duration, format_hex_dump, format_pi_hex
from machinpi.machin import PiResult
from machinpi.output_manager import OutputManager

if TYPE_CHECKING:
    from machinpi.reference import Verification

_PREVIEW_GROUPS = 4


def _row(om: OutputManager, label: str, value: object) -> None:
    om.write(f"  {label:.<28} {value}")


def print_summary(result: PiResult, om: OutputManager) -> None:
    """Header block: precision, series statistics and a short preview."""
    om.write(f"\n{Fore.YELLOW}{Style.BRIGHT}π by Machin's formula{Style.RESET_ALL}")
    _row(om, "Digits (base 2^64)", f"{result.width:,}")
    _row(om, "Fraction bits", f"{result.bits:,}")
    for s in result.stats:
        _row(om, s.label, f"{s.terms:,} terms in {s.passes:,} passes ({format_duration(s.elapsed)})")
    _row(om, "Total time", format_duration(result.elapsed))
    _row(om, "Value (hex)", abbr_hex(format_pi_hex(result, max_groups=_PREVIEW_GROUPS)))


def print_verification(v: Verification, om: OutputManager, *, bits: int) -> None:
    if v.ok:
        status = f"{Fore.GREEN}{Style.BRIGHT}OK{Style.RESET_ALL}"
    else:
        status = f"{Fore.RED}{Style.BRIGHT}MISMATCH{Style.RESET_ALL}"
    _row(om, "Reference check", status)
    _row(om, "Matching bits", f"{v.matching_bits:,} of {bits:,}")
    _row(om, "Distance (ulps)", f"{v.ulps:,} (bound {v.bound:,})")
    if not v.integer_part_ok:
        om.write(f"  {Fore.RED}integer part is not 3{Style.RESET_ALL}")


def print_hex_dump(result: PiResult, om: OutputManager, *, groups_per_line: int = 4) -> None:
    om.write(f"\n{Style.DIM}π - {result.integer_part}, base 2^64 digits:{Style.RESET_ALL}")
    om.write(format_hex_dump(result.fraction, groups_per_line=groups_per_line))


def show_intro_help() -> None:
    print(f"""
{Fore.YELLOW}{Style.BRIGHT}Commands{Style.RESET_ALL}
  <digits>        compute π with that many base-2^64 digits (e.g. 256, 10_000, 4096b)
  <profile>       switch to a profile (see P)
  P               list profiles
  HIST            show this session's runs
  DEBUG on|off    toggle debug output
  VERIFY on|off   toggle the reference check
  H               this help
  Q               quit
""")


def print_profiles_with_descriptions() -> None:
    pairs = list_profiles_with_descriptions()

    if not pairs:
        print("\nAvailable profiles: (none)")
        return

    current = read_current_profile()

    lines = []
    for name, desc in pairs:
        mark = "→" if current and name == current else " "
        lines.append(f"{mark} {name:13} — {desc}")
    print("\nAvailable profiles:\n  " + "\n  ".join(lines))
