"""Shared pytest fixtures for all tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from sesbundle.core.logging import BuildLogger


class RecordingLogger:
    """Minimal structlog-style logger that records every call."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    def _record(self, level: str, event: str, **fields: Any) -> None:
        self.events.append({"level": level, "event": event, **fields})

    def debug(self, event: str, **fields: Any) -> None:
        self._record("debug", event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("warning", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, **fields)

    def named(self, event: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["event"] == event]


@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def build_logger(recorder: RecordingLogger) -> BuildLogger:
    """BuildLogger that writes into the recorder fixture."""
    return BuildLogger(logger=recorder)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A tiny JavaScript project with an entry module and a dist/ directory."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "index.js").write_text("module.exports = require('./lib');\n", encoding="utf-8")
    (src / "lib.js").write_text("module.exports = 42;\n", encoding="utf-8")
    (tmp_path / "dist").mkdir()
    return tmp_path
