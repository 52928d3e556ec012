from __future__ import annotations

from pathlib import Path

from mail_dashboard_server.core.cache import JsonFileCache, SourceCache
from mail_dashboard_server.core.config import BIN_JOURNALCTL
from mail_dashboard_server.core.executor import CommandResult
from mail_dashboard_server.core.models import SourceMode
from mail_dashboard_server.core.source import SourceResolver

PATTERNS = ("/logs/mail.log*", "/logs/maillog*", "/logs/mail/*.log*")
JOURNAL_OK = {BIN_JOURNALCTL: CommandResult(exit_code=0, stdout="-- No entries --\n", stderr="")}


def _resolver(source_cache, runner, clock, files: dict[str, list[str]], **kwargs) -> SourceResolver:
    return SourceResolver(
        cache=source_cache,
        runner=runner,
        log_globs=PATTERNS,
        clock=clock,
        list_files=lambda pattern: files.get(pattern, []),
        **kwargs,
    )


def test_first_pattern_with_files_wins(source_cache, fake_runner, fake_clock) -> None:
    files = {
        "/logs/maillog*": ["/logs/maillog.1", "/logs/maillog"],
        "/logs/mail/*.log*": ["/logs/mail/x.log"],
    }
    runner = fake_runner()
    d = _resolver(source_cache, runner, fake_clock(1000), files).resolve(force=True)

    assert d.mode is SourceMode.FILE_GLOB
    assert d.pattern == "/logs/maillog*"
    assert d.files == ("/logs/maillog", "/logs/maillog.1")
    assert [(r.pattern, r.files_found) for r in d.scan_report] == [
        ("/logs/mail.log*", 0),
        ("/logs/maillog*", 2),
    ]
    assert runner.calls == []


def test_journal_fallback_is_persisted(source_cache, fake_runner, fake_clock) -> None:
    runner = fake_runner(JOURNAL_OK)
    d = _resolver(source_cache, runner, fake_clock(1000), {}).resolve(True)

    assert d.mode is SourceMode.JOURNAL
    assert d.files == ()
    assert len(d.scan_report) == 3
    assert runner.called(BIN_JOURNALCTL)[0][-4:] == ["-u", "postfix", "-u", "dovecot"]

    cached = source_cache.read()
    assert cached == d


def test_no_source_is_remembered(source_cache, fake_runner, fake_clock) -> None:
    runner = fake_runner()
    clock = fake_clock(1000)
    resolver = _resolver(source_cache, runner, clock, {})

    first = resolver.resolve()
    clock.now = 1500
    second = resolver.resolve()

    assert first.mode is SourceMode.NONE
    assert second == first
    assert len(runner.called(BIN_JOURNALCTL)) == 1


def test_cache_hit_within_ttl_returns_same_descriptor(source_cache, fake_runner, fake_clock) -> None:
    files = {"/logs/mail.log*": ["/logs/mail.log"]}
    clock = fake_clock(10_000)
    resolver = _resolver(source_cache, fake_runner(), clock, files)

    first = resolver.resolve(False)
    files["/logs/mail.log*"] = ["/logs/mail.log", "/logs/mail.log.1"]
    clock.now = 10_000 + 3599
    second = resolver.resolve(False)

    assert second == first
    assert second.decided_at == first.decided_at == 10_000


def test_ttl_expiry_and_force_rescan(source_cache, fake_runner, fake_clock) -> None:
    files = {"/logs/mail.log*": ["/logs/mail.log"]}
    clock = fake_clock(10_000)
    resolver = _resolver(source_cache, fake_runner(), clock, files)
    resolver.resolve()

    files["/logs/mail.log*"] = ["/logs/mail.log", "/logs/mail.log.1"]
    clock.now = 10_100
    forced = resolver.resolve(force=True)
    assert forced.decided_at == 10_100
    assert len(forced.files) == 2

    clock.now = 10_100 + 3600
    expired = resolver.resolve()
    assert expired.decided_at == 10_100 + 3600


def test_corrupt_cache_triggers_rescan(tmp_path: Path, fake_runner, fake_clock) -> None:
    path = tmp_path / "logsource.json"
    path.write_text("{not json", encoding="utf-8")
    cache = SourceCache(JsonFileCache(path))
    files = {"/logs/mail.log*": ["/logs/mail.log"]}

    d = _resolver(cache, fake_runner(), fake_clock(42), files).resolve()

    assert d.decided_at == 42
    assert cache.read() == d


def test_binaries_recorded(source_cache, fake_runner, fake_clock, tmp_path: Path) -> None:
    present = tmp_path / "zgrep"
    present.write_text("", encoding="utf-8")
    d = _resolver(
        source_cache,
        fake_runner(),
        fake_clock(1),
        {"/logs/mail.log*": ["/logs/mail.log"]},
        binaries={"zgrep": str(present), "doveadm": str(tmp_path / "missing")},
    ).resolve()

    assert d.binaries == {"zgrep": True, "doveadm": False}
