from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

import pytest

from mail_dashboard_server.core.cache import JsonFileCache, SourceCache
from mail_dashboard_server.core.executor import CommandResult


class FakeRunner:
    """CommandRunner double: records argv and answers from a prefix table."""

    def __init__(self, responses: dict[str, CommandResult] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[list[str]] = []

    def __call__(self, argv: Sequence[str], timeout: float) -> CommandResult:
        self.calls.append(list(argv))
        return self.responses.get(argv[0], CommandResult(exit_code=1, stdout="", stderr=""))

    def called(self, binary: str) -> list[list[str]]:
        return [c for c in self.calls if c[0] == binary]


class FakeClock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_runner() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def fake_clock() -> Callable[[float], FakeClock]:
    return FakeClock


@pytest.fixture
def iso_line() -> Callable[[int, str], str]:
    """Build a journal/rsyslog style line with an explicit UTC timestamp."""

    def _line(ts: int, body: str) -> str:
        stamp = datetime.fromtimestamp(ts, UTC).isoformat()
        return f"{stamp} mx1 {body}"

    return _line


@pytest.fixture
def write_mail_log() -> Callable[[Path, list[str]], None]:
    def _write(path: Path, lines: list[str]) -> None:
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    return _write


@pytest.fixture
def source_cache(tmp_path: Path) -> SourceCache:
    return SourceCache(JsonFileCache(tmp_path / "cache" / "logsource.json"))
