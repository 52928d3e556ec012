from __future__ import annotations

from datetime import datetime

import pytest

from mail_dashboard_server.core.aggregate import aggregate, bucket_events, iter_events
from mail_dashboard_server.core.models import Category, ClassifiedEvent, RawLine
from mail_dashboard_server.core.time_window import WindowKind, live_window

NOW = int(datetime(2025, 6, 18, 14, 37, 12).timestamp())


class StubReader:
    def __init__(self, lines: list[RawLine]) -> None:
        self.lines = lines
        self.requested: list[int | None] = []

    async def relevant_lines(self, start_ts: int | None = None) -> list[RawLine]:
        self.requested.append(start_ts)
        return list(self.lines)


def _raw(iso_line, ts: int, body: str) -> RawLine:
    return RawLine(text=iso_line(ts, body))


SENT = "postfix/smtp[1]: A1: to=<a@x.org>, status=sent (250 ok)"
INCOMING = "postfix/smtpd[2]: A1: client=relay.x.org[192.0.2.1]"
AUTH = "postfix/smtpd[3]: warning: x[192.0.2.7]: SASL LOGIN authentication failed"
GREY = "postgrey[4]: action=greylist, reason=new"


def test_iter_events_drops_unparseable_and_unclassified(iso_line) -> None:
    lines = [
        _raw(iso_line, NOW, SENT),
        RawLine(text="no timestamp status=sent"),
        _raw(iso_line, NOW, "postfix/anvil[9]: statistics: max connection rate"),
        RawLine(text=""),
    ]
    events = list(iter_events(lines))
    assert events == [ClassifiedEvent(timestamp=NOW, category=Category.SENT)]


@pytest.mark.asyncio
async def test_live_counts_cover_all_events_in_window(iso_line) -> None:
    inside = [
        (NOW - 3600, SENT),
        (NOW - 3000, INCOMING),
        (NOW - 1800, AUTH),
        (NOW - 901, GREY),
        (NOW - 1, SENT),
        (NOW, INCOMING),
    ]
    outside = [(NOW - 3601, SENT), (NOW + 1, SENT)]
    reader = StubReader([_raw(iso_line, ts, body) for ts, body in inside + outside])

    result = await aggregate(reader, WindowKind.LIVE, NOW)

    assert reader.requested == [NOW - 3600]
    assert len(result.window.labels) == 12
    total = sum(sum(counts) for counts in result.counts.values())
    assert total == len(inside)
    assert sum(result.counts[Category.AUTH_FAIL]) == 1
    assert sum(result.counts[Category.GREYLISTED]) == 1
    assert result.counts[Category.SENT][0] == 1
    assert result.counts[Category.INCOMING][11] == 1


def test_event_on_bucket_upper_bound_stays_in_that_bucket() -> None:
    window = live_window(NOW)
    _, hi = window.bounds[5]
    events = [
        ClassifiedEvent(timestamp=hi, category=Category.SENT),
        ClassifiedEvent(timestamp=window.end + 1, category=Category.SENT),
    ]
    result = bucket_events(window, events)
    assert result.counts[Category.SENT][5] == 1
    assert sum(result.counts[Category.SENT]) == 1


@pytest.mark.asyncio
async def test_today_by_hour_omits_auth_fail(iso_line) -> None:
    two_pm = int(datetime(2025, 6, 18, 14, 0, 0).timestamp())
    yesterday = int(datetime(2025, 6, 17, 23, 0, 0).timestamp())
    reader = StubReader(
        [
            _raw(iso_line, two_pm, SENT),
            _raw(iso_line, two_pm + 59, SENT),
            _raw(iso_line, two_pm, AUTH),
            _raw(iso_line, yesterday, SENT),
        ]
    )

    result = await aggregate(reader, WindowKind.TODAY, NOW)
    payload = result.to_dict()

    assert "auth_fail" not in payload
    assert payload["labels"][14] == "14:00"
    assert payload["sent"][14] == 2
    assert sum(payload["sent"]) == 2


@pytest.mark.asyncio
async def test_week_and_month_daily_buckets(iso_line) -> None:
    day_two = int(datetime(2025, 6, 13, 9, 0, 0).timestamp())
    reader = StubReader(
        [
            _raw(iso_line, day_two, INCOMING),
            _raw(iso_line, NOW - 10, INCOMING),
            _raw(iso_line, NOW - 10, GREY),
        ]
    )

    week = (await aggregate(reader, WindowKind.WEEK, NOW)).to_dict()
    month = (await aggregate(reader, WindowKind.MONTH, NOW)).to_dict()

    assert week["incoming"] == [0, 1, 0, 0, 0, 0, 1]
    assert week["greylisted"][6] == 1
    assert set(month) == {"labels", "incoming", "sent", "failed_delivery"}
    assert month["incoming"][-1] == 1
    assert month["incoming"][-6] == 1


@pytest.mark.asyncio
async def test_empty_source_yields_zero_series() -> None:
    result = await aggregate(StubReader([]), WindowKind.LIVE, NOW)
    assert all(v == [0] * 12 for v in result.counts.values())
