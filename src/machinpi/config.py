from __future__ import annotations

import tomllib as toml
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from machinpi.utility import UserInputError, validate_digit_count
from machinpi.workspace import ensure_workspace_seeded, workspace_dir

# Section defaults; a profile only needs to list what it changes.
DEFAULTS: dict[str, dict[str, Any]] = {
    "PRECISION": {"DIGITS": 1000},
    "OUTPUT": {"OUTPUT_FILE": "", "GROUPS_PER_LINE": 4, "SHOW_HEX": True},
    "BEHAVIOUR": {"DEBUG": False, "CHECK_INVARIANTS": False, "VERIFY": False, "SHOW_PROGRESS": True},
}


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [_PROFILE_] section).
    .as_dict() feeds runtime.apply().

    Added fields:
      - name:        resolved profile name (FILE.stem if not provided in [_PROFILE_])
      - description: one-line description from [_PROFILE_] or "(no description)"
    """
    data: dict[str, Any]
    name: str
    description: str
    _source: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


# --- Paths -----------------------------------------------------------------

def _profiles_dir() -> Path:
    return workspace_dir() / "profiles"


def _profile_path(name: str) -> Path:
    return _profiles_dir() / f"{name}.toml"


# --- I/O -------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except toml.TOMLDecodeError as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


# --- Metadata handling -----------------------------------------------------


def _sanitize_oneline(s: str) -> str:
    return " ".join(str(s).split()) or "(no description)"


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    """
    Extract [_PROFILE_] meta (name, description) and return:
      (settings_without_profile, resolved_name, resolved_description)
    """
    meta = raw.get("_PROFILE_") or {}
    if "_PROFILE_" in raw:
        raw = {k: v for k, v in raw.items() if k != "_PROFILE_"}

    name = str(meta.get("name") or fallback_name)
    description = _sanitize_oneline(str(meta.get("description") or ""))

    return raw, name, description


def _with_defaults(data: dict[str, Any]) -> dict[str, Any]:
    """Fill missing sections/keys from DEFAULTS; unknown sections pass through."""
    merged = dict(data)
    for section, values in DEFAULTS.items():
        given = data.get(section) or {}
        if not isinstance(given, dict):
            raise UserInputError(f"[{section}] must be a table, got {type(given).__name__}.")
        merged[section] = {**values, **given}
    return merged


def _check_types(data: dict[str, Any]) -> None:
    validate_digit_count(data["PRECISION"]["DIGITS"])

    groups = data["OUTPUT"]["GROUPS_PER_LINE"]
    if isinstance(groups, bool) or not isinstance(groups, int) or groups < 1:
        raise UserInputError(f"OUTPUT.GROUPS_PER_LINE must be a positive integer, got {groups!r}.")

    out = data["OUTPUT"]["OUTPUT_FILE"]
    if not isinstance(out, str):
        raise UserInputError(f"OUTPUT.OUTPUT_FILE must be a string, got {out!r}.")

    for section, key in (("OUTPUT", "SHOW_HEX"),
                         ("BEHAVIOUR", "DEBUG"),
                         ("BEHAVIOUR", "CHECK_INVARIANTS"),
                         ("BEHAVIOUR", "VERIFY"),
                         ("BEHAVIOUR", "SHOW_PROGRESS")):
        if not isinstance(data[section][key], bool):
            raise UserInputError(f"{section}.{key} must be true or false, got {data[section][key]!r}.")


# --- Public API ------------------------------------------------------------


def list_all_profiles() -> list[str]:
    """
    Return the list of available profile *names* (filename stems).
    """
    ensure_workspace_seeded()
    pdir = _profiles_dir()
    if not pdir.exists():
        return []
    return sorted(p.stem for p in pdir.glob("*.toml"))


def list_profiles_with_descriptions() -> list[tuple[str, str]]:
    """
    Return [(name, description), ...] for all profiles.
    Profiles lacking [_PROFILE_] get "(no description)".
    """
    items: list[tuple[str, str]] = []
    for p in (_profiles_dir().glob("*.toml")):
        try:
            raw = _load_toml(p)
            _, nm, desc = _split_profile_data(raw, p.stem)
            items.append((nm, desc))
        except UserInputError:
            # Best-effort listing; fall back to filename
            items.append((p.stem, "(unreadable profile)"))
    return sorted(items, key=lambda t: t[0].lower())


def has_profile(name: str) -> bool:
    return _profile_path(name).exists()


def load_settings(name: str | None) -> Settings:
    """
    Load a profile by name (default 'default'), strip the [_PROFILE_] metadata,
    fill in defaults, check value types and return
    Settings(data=..., name=..., description=..., _source=path).
    """
    if not name:
        name = "default"

    path = _profile_path(name)
    if not path.exists():
        raise FileNotFoundError(f"Profile '{name}' not found at {path}")

    raw = _load_toml(path)

    # Pull out metadata (name/description) and remove [_PROFILE_] from settings
    data, resolved_name, description = _split_profile_data(raw, path.stem)
    data = _with_defaults(data)
    _check_types(data)

    return Settings(
        data=data,
        name=resolved_name,
        description=description,
        _source=path,
    )


def default_settings() -> Settings:
    """Settings used when no profile file can be read."""
    return Settings(data=_with_defaults({}), name="builtin", description="built-in defaults")


def _current_profile_path() -> Path:
    p = _profiles_dir()
    p.mkdir(parents=True, exist_ok=True)
    return p / ".current"


def read_current_profile() -> str | None:
    try:
        s = _current_profile_path().read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return s[:-5] if s.lower().endswith(".toml") else (s or None)


def write_current_profile(name: str) -> None:
    nm = (name or "").strip()
    if nm.lower().endswith(".toml"):
        nm = nm[:-5]
    _current_profile_path().write_text(nm, encoding="utf-8")
