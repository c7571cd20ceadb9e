from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("machinpi")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .arctan import ArctanSeriesEvaluator, SeriesStats, arctan_inverse
from .fixedpoint import (
    BASE,
    DEFAULT_DIGITS,
    DIGIT_BITS,
    CarryOverflowError,
    FixedPointError,
    FixedPointNumber,
    NegativeResultError,
    StaleCacheError,
)
from .fmt import format_hex_dump, format_pi_hex
from .machin import PiResult, compute_pi
from .runtime import APPLY, CFG

__all__ = [
    "APPLY",
    "BASE",
    "CFG",
    "DEFAULT_DIGITS",
    "DIGIT_BITS",
    "ArctanSeriesEvaluator",
    "CarryOverflowError",
    "FixedPointError",
    "FixedPointNumber",
    "NegativeResultError",
    "PiResult",
    "SeriesStats",
    "StaleCacheError",
    "__version__",
    "arctan_inverse",
    "compute_pi",
    "format_hex_dump",
    "format_pi_hex",
]
