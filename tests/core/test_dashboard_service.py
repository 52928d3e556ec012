from __future__ import annotations

import json
import os
from datetime import datetime

import pytest

from mail_dashboard_server.core.config import BIN_JOURNALCTL, DashboardConfig
from mail_dashboard_server.core.dashboard_service import MailDashboard
from mail_dashboard_server.core.time_window import WindowKind

# Local noon keeps every fixture line on the same local day.
NOW = int(datetime(2025, 6, 17, 12, 0, 0).timestamp())

SENT = "postfix/smtp[11]: 4A1B2C3D4E: to=<Bob@Example.org>, relay=mx[1.2.3.4]:25, status=sent (250 ok)"
INCOMING = "postfix/smtpd[9]: 4A1B2C3D4E: client=mail.example.com[198.51.100.7]"
PICKUP = "postfix/qmgr[10]: qmgr: 4A1B2C3D4E: from=<alice@example.com>, size=2100, nrcpt=1 (queue active)"
AUTH = "dovecot: auth-worker(22): pam(eve,203.0.113.9): authentication failed"


@pytest.fixture
def mail_dir(tmp_path, iso_line, write_mail_log):
    log = tmp_path / "mail.log"
    write_mail_log(
        log,
        [
            iso_line(NOW - 86400, SENT),
            iso_line(NOW - 600, INCOMING),
            iso_line(NOW - 500, INCOMING),
            iso_line(NOW - 400, PICKUP),
            iso_line(NOW - 120, AUTH),
            iso_line(NOW - 30, SENT),
            iso_line(NOW - 10, SENT),
        ],
    )
    os.utime(log, (NOW - 5, NOW - 5))
    return tmp_path


def _dashboard(tmp_path, runner, clock, globs=None) -> MailDashboard:
    cfg = DashboardConfig(
        cache_dir=tmp_path / "cache",
        use_sudo=False,
        log_globs=globs or (str(tmp_path / "mail.log*"),),
    )
    return MailDashboard(cfg, runner=runner, clock=clock)


@pytest.mark.asyncio
async def test_today_counts_and_success_rate(mail_dir, fake_runner, fake_clock) -> None:
    stats = await _dashboard(mail_dir, fake_runner(), fake_clock(NOW)).today()

    assert stats.date == "Jun 17"
    assert stats.sent == 2
    assert stats.incoming == 3
    assert stats.auth_fail == 1
    assert stats.rejected == 0
    assert stats.success_rate == 66.7


@pytest.mark.asyncio
async def test_today_without_incoming_divides_by_one(tmp_path, fake_runner, fake_clock, iso_line, write_mail_log) -> None:
    write_mail_log(tmp_path / "mail.log", [iso_line(NOW - 60, SENT)])
    stats = await _dashboard(tmp_path, fake_runner(), fake_clock(NOW)).today()

    assert stats.incoming == 0
    assert stats.success_rate == 100.0


@pytest.mark.asyncio
async def test_live_series_shape(mail_dir, fake_runner, fake_clock) -> None:
    dashboard = _dashboard(mail_dir, fake_runner(), fake_clock(NOW))
    series = await dashboard.series(WindowKind.LIVE)

    assert len(series["labels"]) == 12
    assert sum(series["sent"]) == 2
    assert sum(series["incoming"]) == 3
    assert sum(series["auth_fail"]) == 1
    assert series["sent"][-1] == 2

    agg = json.loads((mail_dir / "cache" / "agg.json").read_text(encoding="utf-8"))
    assert agg["updated_at"] == NOW


@pytest.mark.asyncio
async def test_source_records_index_and_aggregate_time(mail_dir, fake_runner, fake_clock) -> None:
    dashboard = _dashboard(mail_dir, fake_runner(), fake_clock(NOW))

    out = await dashboard.source()
    assert out["mode"] == "file_glob"
    assert out["files"] == [str(mail_dir / "mail.log")]
    assert out["index_meta"] == {"files": 1, "updated": NOW}
    assert out["agg_ts"] == 0

    await dashboard.series(WindowKind.TODAY)
    assert (await dashboard.source())["agg_ts"] == NOW


@pytest.mark.asyncio
async def test_top_talkers_by_period(mail_dir, fake_runner, fake_clock) -> None:
    dashboard = _dashboard(mail_dir, fake_runner(), fake_clock(NOW))

    day = await dashboard.top("day")
    assert day == {"senders": {"alice@example.com": 1}, "recipients": {"bob@example.org": 2}}

    week = await dashboard.top("week")
    assert week["recipients"] == {"bob@example.org": 3}

    with pytest.raises(ValueError, match="Unknown period"):
        await dashboard.top("year")


@pytest.mark.asyncio
async def test_health_with_plain_file(mail_dir, fake_runner, fake_clock) -> None:
    report = await _dashboard(mail_dir, fake_runner(), fake_clock(NOW)).health()

    assert report.strategy == "plain"
    assert report.active_plain == str(mail_dir / "mail.log")
    assert report.note == "using plain file for live/today"
    assert report.recent_60s_rows == 2
    assert report.last_log_update_ts == NOW - 5
    assert report.sudo_mode_used is False
    assert "no_readable_log_files" not in report.warnings
    assert "stale_log" not in report.warnings
    assert "sudo_missing" not in report.warnings


@pytest.mark.asyncio
async def test_health_flags_stale_log(mail_dir, fake_runner, fake_clock) -> None:
    os.utime(mail_dir / "mail.log", (NOW - 3600, NOW - 3600))
    report = await _dashboard(mail_dir, fake_runner(), fake_clock(NOW)).health()

    assert "stale_log" in report.warnings


@pytest.mark.asyncio
async def test_no_source_degrades_to_empty_payloads(tmp_path, fake_runner, fake_clock) -> None:
    runner = fake_runner()
    dashboard = _dashboard(tmp_path, runner, fake_clock(NOW), globs=(str(tmp_path / "none*"),))

    report = await dashboard.health()
    assert report.strategy == "none"
    assert report.note == "no log source found"
    assert "no_readable_log_files" in report.warnings
    assert report.recent_60s_rows == 0
    assert len(runner.called(BIN_JOURNALCTL)) == 1

    series = await dashboard.series(WindowKind.WEEK)
    assert len(series["labels"]) == 7
    assert all(v == 0 for v in series["sent"])
    assert "auth_fail" not in series

    stats = await dashboard.today()
    assert stats.sent == 0
    assert stats.success_rate == 0.0

    assert (await dashboard.totals()).total_sent == 0
