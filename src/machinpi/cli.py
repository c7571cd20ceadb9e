# src/machinpi/cli.py

"""
machinpi - π to a fixed binary precision with Machin's formula

Description:
    Evaluates pi/4 = 4*arctan(1/5) - arctan(1/239) on fixed-width base-2^64
    fractions and prints the result as groups of hexadecimal digits.

usage: see machinpi -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import platform
import sys
import textwrap
import threading
import time
import traceback
from importlib.resources import files as pkg_files
from typing import NamedTuple

from colorama import Fore, Style
from colorama import init as colorama_init

from machinpi import __version__ as _ver
from machinpi import config as CONFIG
from machinpi.arctan import ArctanSeriesEvaluator
from machinpi.display import (
    print_hex_dump,
    print_profiles_with_descriptions,
    print_summary,
    print_verification,
    show_intro_help,
)
from machinpi.machin import PiResult, compute_pi
from machinpi.output_manager import OutputManager
from machinpi.progress import Progress
from machinpi.runtime import APPLY, CFG, ensure_runtime_deps
from machinpi.runtime import current as _rt_current
from machinpi.utility import (
    UserInputError,
    clear_screen,
    flatten_dotted,
    parse_digit_count,
    typename,
    validate_digit_count,
    validate_output_setting,
)
from machinpi.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

COMMANDS = {"init", "where", "profiles", "active"}


# In memory session history
class HistoryItem(NamedTuple):
    digits: int
    profile: str | None
    timestamp: float
    elapsed: float


_HISTORY: list[HistoryItem] = []


def add_to_history(digits: int, profile: str | None, elapsed: float) -> None:
    _HISTORY.append(HistoryItem(digits=digits, profile=profile, timestamp=time.time(), elapsed=elapsed))


def get_history() -> list[HistoryItem]:
    return list(_HISTORY)


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    # Always show full Python tracebacks
    try:
        faulthandler.enable()
    except (AttributeError, ValueError, OSError):
        pass  # stderr without a file descriptor (captured or redirected)

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


def _debug(msg: str) -> None:
    if _rt_current().debug:
        print(f"{Style.DIM}[debug]{Style.RESET_ALL} {msg}", file=sys.stderr)


def _resolve_inputs(items: list[str]) -> tuple[str | None, int | None]:
    """Return (profile_or_command, digits) based on the first two positionals.

    Rules:
      - If one item parses as a digit count -> digits; else -> profile/command
      - If two items:
          * first numeric, second not -> (None, digits)
          * first not, second numeric -> (profile, digits)
          * both numeric -> take the first as digits
          * neither numeric -> (profile, None)
    """
    if not items:
        return None, None

    if len(items) == 1:
        n = parse_digit_count(items[0])
        return (None, n) if n is not None else (items[0], None)

    a, b = items[0], items[1]
    na, nb = parse_digit_count(a), parse_digit_count(b)

    if na is not None:
        return None, na
    if nb is not None:
        return a, nb
    return a, None


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      init
          Create the workspace and copy the packaged profiles if missing.

      init overwrite
          Meant for developers. Requires environment variable MACHINPI_DEV=1.
          Replaces the workspace profiles with the packaged ones.

      profiles
          List the available profiles.

      active
          Show the last used profile.

      where
          Show the workspace and package paths.

    digits:
      A count of base-2^64 digits (256, 10_000) or of bits with a 'b'
      suffix (4096b). Without it the profile's PRECISION.DIGITS is used.
      Without any argument an interactive prompt starts.
    """)

    p = argparse.ArgumentParser(
        prog="machinpi",
        description="π by Machin's formula on fixed-width base-2^64 fractions",
        usage=(
            "machinpi [[profile] [digits]] [--output OUTPUT] [--quiet] [--no-hex] [--verify] [--debug]\n"
            "       machinpi init | where | profiles | active\n"
            "       machinpi -h | --help\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="[[profile] digits]",
                   help="optional profile name and/or digit count")
    p.add_argument("--output", default=None, help="Write results to a file (also prints unless --quiet)")
    p.add_argument("--quiet", action="store_true", help="Suppress progress and screen output")
    p.add_argument("--no-hex", action="store_true", help="Omit the hexadecimal digit dump")
    p.add_argument("--verify", action="store_true", help="Compare the result with an MPFR reference value")
    p.add_argument("--debug", action="store_true", help="Show profile settings, invariant checks and tracebacks")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")

    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = ("--debug" in (argv if argv is not None else sys.argv)) or _rt_current().debug
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _configure_text_streams() -> None:
    # 1) Respect explicit user choice
    if os.environ.get("PYTHONIOENCODING"):
        return

    # Only touch redirected output (pipes/files), leave TTY as-is
    if sys.stdout.isatty() or not hasattr(sys.stdout, "reconfigure"):
        return
    enc = (sys.stdout.encoding or "").lower()
    # Windows: force UTF-8 for redirected output; POSIX: fix only if clearly unsafe
    if platform.system() == "Windows" or enc in ("", "ascii", "us-ascii"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")


def _run_command(cmd: str, items: list[str]) -> int:
    _TWO_ARGS = 2
    if cmd == "init":
        if len(items) == _TWO_ARGS and items[1] == "overwrite":
            if os.environ.get("MACHINPI_DEV") != "1":
                print("Refusing to overwrite: set MACHINPI_DEV=1 to enable developer overwrite.")
                return 2
            ws, copied = seed_workspace(overwrite=True)
            print(f"Workspace ready at: {ws} (overwrote existing files)")
            print(f"Copied -> profiles: {copied.get('profiles', 0)}")
            return 0
        ws, _, copied = ensure_workspace_seeded()
        print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied.get('profiles', 0)}")
        return 0

    if cmd == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Package:   {pkg_files('machinpi')}")
        return 0

    if cmd == "profiles":
        print_profiles_with_descriptions()
        return 0

    # active
    print(f"Active profile: {CONFIG.read_current_profile() or 'default'}")
    return 0


def _select_profile_name(explicit: str | None) -> str:
    """
    Precedence:
      1) explicit profile argument
      2) last used (from workspace)
      3) 'default'
    """
    if explicit:
        return explicit
    last = CONFIG.read_current_profile()
    if last and CONFIG.has_profile(last):
        return last
    return "default"


def _apply_profile(name: str, *, keep_debug: bool = False) -> CONFIG.Settings:
    """Load and install a profile; keep_debug stops BEHAVIOUR.DEBUG = false from silencing --debug."""
    if CONFIG.has_profile(name):
        selected = CONFIG.load_settings(name)
    else:
        _debug(f"profile '{name}' not found, using built-in defaults")
        selected = CONFIG.default_settings()
    APPLY(selected)
    if keep_debug:
        _rt_current().debug = True

    _debug(f"active profile: {selected.name}")
    if selected._source:
        _debug(f"profile file: {selected._source}")
    flat = flatten_dotted(_rt_current().settings)
    for k in sorted(flat.keys(), key=str.lower):
        v = flat[k]
        _debug(f"  {k:.<40} {v!r} ({typename(v)})")
    return selected


class RunOptions(NamedTuple):
    output: str | None
    quiet: bool
    show_hex: bool
    verify: bool


def run_once(digits: int, opts: RunOptions) -> tuple[PiResult, bool]:
    """Compute, render and (optionally) verify one result. Returns (result, verified_ok)."""
    rt = _rt_current()
    target = opts.output if opts.output is not None else CFG("OUTPUT.OUTPUT_FILE", "")
    show_progress = bool(CFG("BEHAVIOUR.SHOW_PROGRESS", True)) and not opts.quiet and not rt.debug

    progress = Progress(digits, enabled=show_progress)
    evaluator = ArctanSeriesEvaluator(digits, progress=progress, check_invariants=rt.check_invariants)
    _debug(f"computing {digits} digits, invariant checks {'on' if rt.check_invariants else 'off'}")

    om = OutputManager(output_file=target, quiet=opts.quiet, run_name=f"pi_{digits}d")
    ok = True
    try:
        result = compute_pi(digits, evaluator=evaluator)
        print_summary(result, om)
        if opts.verify:
            from machinpi.reference import verify  # imports gmpy2 and sympy

            check = verify(result)
            ok = check.ok
            print_verification(check, om, bits=result.bits)
        if opts.show_hex:
            print_hex_dump(result, om, groups_per_line=int(CFG("OUTPUT.GROUPS_PER_LINE", 4)))
    finally:
        om.close()
    if om.path:
        _debug(f"output written to {om.path}")
    return result, ok


def _options(args, *, verify_override: bool | None = None) -> RunOptions:
    try:
        output = validate_output_setting(args.output)
    except ValueError as e:
        raise UserInputError(f"--output: {e}") from None
    verify_flag = args.verify or bool(CFG("BEHAVIOUR.VERIFY", False))
    if verify_override is not None:
        verify_flag = verify_override
    return RunOptions(
        output=output,
        quiet=args.quiet,
        show_hex=not args.no_hex and bool(CFG("OUTPUT.SHOW_HEX", True)),
        verify=verify_flag,
    )


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init()
    _configure_text_streams()

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)

    _install_loud_error_handlers(args.debug)

    if not ensure_runtime_deps(strict=True):
        return 1

    # Ensure a first-run workspace seed silently
    ensure_workspace_seeded()

    profile, digits = _resolve_inputs(args.items)
    if profile in COMMANDS:
        return _run_command(profile, args.items)

    if profile and not CONFIG.has_profile(profile):
        print(f"Unknown profile: '{profile}'")
        print("Available profiles:", ", ".join(CONFIG.list_all_profiles()))
        return 2

    profile_name = _select_profile_name(profile)
    _apply_profile(profile_name, keep_debug=args.debug)

    # --- one-shot path ---
    if args.items:
        if digits is None:
            digits = validate_digit_count(CFG("PRECISION.DIGITS", 1000))
        else:
            validate_digit_count(digits, source="digit count")
        if profile:
            CONFIG.write_current_profile(profile_name)
        _, ok = run_once(digits, _options(args))
        return 0 if ok else 3

    return _repl(args, profile_name)


def _repl(args, profile_name: str) -> int:
    if not _rt_current().debug:
        clear_screen()
    print(f"{Fore.YELLOW}{Style.BRIGHT}machinpi v{_ver} — π by Machin's formula{Style.RESET_ALL}")

    current_profile = profile_name
    verify_override: bool | None = None
    while True:
        try:
            default_digits = CFG("PRECISION.DIGITS", 1000)
            prompt = (f"\nProfile: {current_profile} — Enter digits [{default_digits}], "
                      "a profile or a command (h=Help, q=Quit): ")
            user_input = input(prompt).strip()

            low = user_input.lower()
            if low in {"q", "quit", "exit"}:
                break

            if low in {"h", "help"}:
                show_intro_help()
                continue

            if low in {"p", "profiles"}:
                print_profiles_with_descriptions()
                continue

            if low in {"hist", "history"}:
                hist = get_history()
                if not hist:
                    print("History is empty.")
                for item in hist:
                    ts = time.strftime("%H:%M:%S", time.localtime(item.timestamp))
                    print(f"{ts}  digits={item.digits:<8}  profile={item.profile or '-':<12}  {item.elapsed:.3f} s")
                continue

            if low.startswith(("debug", "verify")):
                parts = low.split()
                rt = _rt_current()
                name = parts[0].upper()
                state = rt.debug if parts[0] == "debug" else (
                    verify_override if verify_override is not None else bool(CFG("BEHAVIOUR.VERIFY", False)))
                if len(parts) == 1 or parts[1] == "status":
                    print(f"{name} is currently {'ON' if state else 'OFF'}.")
                elif parts[1] in {"on", "off"}:
                    flag = parts[1] == "on"
                    if parts[0] == "debug":
                        rt.debug = flag
                    else:
                        verify_override = flag
                    print(f"{name} {'enabled' if flag else 'disabled'} for this session.")
                else:
                    print(f"Usage: {name} [on|off|status]")
                continue

            # digit count?
            try:
                digits = validate_digit_count(default_digits) if not user_input else parse_digit_count(user_input)
            except UserInputError as e:
                _print_user_error(str(e))
                continue

            if digits is not None:
                try:
                    validate_digit_count(digits, source="digit count")
                    result, _ = run_once(digits, _options(args, verify_override=verify_override))
                    add_to_history(digits, current_profile, result.elapsed)
                except UserInputError as e:
                    _print_user_error(str(e))
                continue

            # treat as profile switch
            if CONFIG.has_profile(user_input):
                try:
                    _apply_profile(user_input, keep_debug=_rt_current().debug)
                except UserInputError as e:
                    _print_user_error(str(e))
                    continue
                CONFIG.write_current_profile(user_input)
                current_profile = user_input
                print(f"Applied profile: {current_profile}")
                continue

            print(f"{Fore.RED}Invalid input: {Style.RESET_ALL}'{user_input}'. Type H for help.")
        except (EOFError, KeyboardInterrupt):
            print()
            break
        except Exception as e:
            if _rt_current().debug:
                traceback.print_exc()
            else:
                _print_user_error(f"{e.__class__.__name__}: {e}")
            continue
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
