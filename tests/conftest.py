"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from inkpilot.ui.events import EventBus  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("INKPILOT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INKPILOT_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def bus() -> EventBus:
    return EventBus()
