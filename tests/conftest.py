# tests/conftest.py
from __future__ import annotations

import pytest

from machinpi import runtime


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Every test gets its own workspace and a fresh Runtime."""
    home = tmp_path / "workspace"
    monkeypatch.setenv("MACHINPI_HOME", str(home))
    runtime.reset()
    yield home
    runtime.reset()
