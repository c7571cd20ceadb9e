# src/machinpi/runtime.py
"""
Per-process run state: the active profile's settings plus the two flags
(debug output, invariant checks) the series code consults while running.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from importlib.util import find_spec
from typing import TYPE_CHECKING, Any

from colorama import Fore, Style

if TYPE_CHECKING:
    from machinpi.config import Settings

REFERENCE_BACKENDS = ("gmpy2", "sympy")


@dataclass
class Runtime:
    profile_name: str = "default"
    settings: dict[str, Any] = field(default_factory=dict)
    debug: bool = False
    check_invariants: bool = False

    def apply(self, settings: Settings) -> None:
        self.profile_name = settings.name
        self.settings = dict(settings.as_dict())
        behaviour = self.settings.get("BEHAVIOUR", {})
        self.debug = bool(behaviour.get("DEBUG", False))
        self.check_invariants = bool(behaviour.get("CHECK_INVARIANTS", False))

    def get(self, key: str, default: Any = None) -> Any:
        """Dotted lookup, e.g. 'PRECISION.DIGITS'."""
        node: Any = self.settings
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node


_current_runtime: ContextVar[Runtime | None] = ContextVar("machinpi_runtime", default=None)


def current() -> Runtime:
    rt = _current_runtime.get()
    if rt is None:
        rt = reset()
    return rt


def reset() -> Runtime:
    """Install a fresh Runtime (used in tests)."""
    rt = Runtime()
    _current_runtime.set(rt)
    return rt


def APPLY(settings: Settings) -> None:
    current().apply(settings)


def CFG(key: str, default: Any = None) -> Any:
    return current().get(key, default)


# ---- Dependency check --------------------------------------------------------

def missing_reference_backends() -> list[str]:
    return [name for name in REFERENCE_BACKENDS if find_spec(name) is None]


def ensure_runtime_deps(strict: bool = True) -> bool:
    """
    Report missing reference backends before anything imports them.
    Returns False only when something is missing and strict is set.
    """
    missing = missing_reference_backends()
    if not missing:
        return True
    print(
        f"{Fore.RED}{Style.BRIGHT}\nMissing dependencies:{Style.RESET_ALL} {', '.join(missing)}"
        f"\nInstall with: {Fore.YELLOW}pip install {' '.join(missing)}{Style.RESET_ALL}"
    )
    return not strict
