# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
import shutil
import sys

from machinpi.fixedpoint import DIGIT_BITS


class UserInputError(Exception):
    pass


# Above this a pure-Python run takes hours; the profile can still ask for it.
MAX_DIGITS = 100_000


def parse_digit_count(text: str) -> int | None:
    """
    Parse a digit count typed on the command line.

    Accepts plain integers with optional '_' or ',' separators and a 'b' /
    'bits' suffix for a bit count (rounded up to whole 64-bit digits):

        "256"      -> 256
        "10_000"   -> 10000
        "4096b"    -> 64

    Returns None if the text is not a number at all (so the caller can treat
    it as a profile name or command); raises UserInputError if it is a number
    but not a usable digit count.
    """
    s = (text or "").strip().lower().replace("_", "").replace(",", "")
    bits = False
    for suffix in ("bits", "b"):
        if s.endswith(suffix) and s[: -len(suffix)].isdigit():
            s = s[: -len(suffix)]
            bits = True
            break
    if not s.lstrip("+-").isdigit():
        return None

    n = int(s)
    if bits:
        n = -(-n // DIGIT_BITS)
    if n < 1:
        raise UserInputError(f"Invalid input: digit count must be at least 1, got {text.strip()!r}.")
    return n


def validate_digit_count(n: object, source: str = "PRECISION.DIGITS") -> int:
    if isinstance(n, bool) or not isinstance(n, int):
        raise UserInputError(f"{source} must be an integer, got {typename(n)}.")
    if not 1 <= n <= MAX_DIGITS:
        raise UserInputError(f"{source} must be between 1 and {MAX_DIGITS}, got {n}.")
    return n


def clear_screen(keep_scrollback: bool = False) -> None:
    """
    Clear the terminal screen.
    - On Windows: uses 'cls'
    - On POSIX: ANSI sequences; optionally clear scrollback
    """
    try:
        if os.name == "nt":
            os.system("cls")
        else:
            seq = "\033[H\033[2J" if keep_scrollback else "\033[3J\033[H\033[2J"
            sys.stdout.write(seq)
            sys.stdout.flush()
    except Exception:
        try:
            os.system("cls" if os.name == "nt" else "clear")
        except Exception:
            pass


def get_terminal_width(default=80):
    """
    Return the terminal's character width if detected, else the default
    value (80 by default).
    """
    try:
        return shutil.get_terminal_size().columns
    except Exception:
        return default


def validate_output_setting(output_file: str | None) -> str | None:
    """
    Validate output setting.
    - None / "" => ok (screen only)
    - "." / "./" / trailing "/" => ok (per-run directory mode)
    - path/to/file => must not be in forbidden base names or extensions
    Returns the (possibly normalized) output_file, or raises ValueError.
    """
    FORBIDDEN_FILENAMES = {
        ".gitignore",
        "LICENSE",
        "pyproject.toml",
        # Windows reserved device names (case-insensitive on Windows)
        "con", "prn", "aux", "nul",
        "com1", "com2", "com3", "com4", "com5", "com6", "com7", "com8", "com9",
        "lpt1", "lpt2", "lpt3", "lpt4", "lpt5", "lpt6", "lpt7", "lpt8", "lpt9",
    }

    FORBIDDEN_EXTENSIONS = {".py", ".md", ".toml"}

    if not output_file:
        return output_file  # screen only

    # directory/per-run modes are allowed as-is
    if output_file in (".", "./") or output_file.endswith("/"):
        return output_file

    # single file mode: check basename & extension
    basename = os.path.basename(output_file)
    name_no_ext, ext = os.path.splitext(basename)
    ext = ext.lower()

    base_lower = basename.lower()
    name_lower = name_no_ext.lower()
    if base_lower in FORBIDDEN_FILENAMES or name_lower in FORBIDDEN_FILENAMES:
        raise ValueError(f"Forbidden output filename: {basename}")

    if ext in FORBIDDEN_EXTENSIONS:
        raise ValueError(f"Forbidden output file extension: {ext}")

    return output_file


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
