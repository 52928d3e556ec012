"""Top sender / recipient extraction."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable

from .log_reader import LineReader
from .models import RawLine, TalkerTable
from .timestamps import parse_timestamp

DEFAULT_LIMIT = 10

_SENDER_RE = re.compile(r"from=<([^>]+)>", re.IGNORECASE)
_DELIVERED_TO_RE = re.compile(r"to=<([^>]+)>.+status=sent", re.IGNORECASE)


def _top(counter: Counter[str], limit: int) -> dict[str, int]:
    # sorted() is stable, so ties keep first-seen order.
    ranked = sorted(counter.items(), key=lambda kv: kv[1], reverse=True)
    return dict(ranked[:limit])


def tally_talkers(
    lines: Iterable[RawLine],
    *,
    start_ts: int,
    end_ts: int,
    limit: int = DEFAULT_LIMIT,
) -> TalkerTable:
    senders: Counter[str] = Counter()
    recipients: Counter[str] = Counter()

    for raw in lines:
        ts = parse_timestamp(raw.text, raw.reference_year)
        if ts is None or ts < start_ts or ts > end_ts:
            continue
        m = _SENDER_RE.search(raw.text)
        if m:
            senders[m.group(1).lower()] += 1
        m = _DELIVERED_TO_RE.search(raw.text)
        if m:
            recipients[m.group(1).lower()] += 1

    return TalkerTable(senders=_top(senders, limit), recipients=_top(recipients, limit))


async def top_talkers(
    reader: LineReader,
    start_ts: int,
    *,
    now: int,
    limit: int = DEFAULT_LIMIT,
) -> TalkerTable:
    """Top senders and delivered-to recipients seen in [start_ts, now]."""
    if limit < 1:
        raise ValueError("limit must be >= 1")
    lines = await reader.relevant_lines(start_ts)
    return tally_talkers(lines, start_ts=start_ts, end_ts=now, limit=limit)
