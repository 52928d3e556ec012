"""Timestamp extraction for mail log lines."""

from __future__ import annotations

import os
import re
from datetime import datetime
from pathlib import Path

_ISO_RE = re.compile(
    r"^(?P<dt>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?)"
    r"(?P<tz>Z|[+\-]\d{2}:?\d{2})"
)
_CLASSIC_RE = re.compile(
    r"^(?P<mon>[A-Z][a-z]{2})\s+(?P<day>\d{1,2})\s+"
    r"(?P<h>\d{2}):(?P<mi>\d{2}):(?P<s>\d{2})"
)
_MONTHS = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}


def _parse_iso(dt_str: str, tz: str) -> int | None:
    if tz == "Z":
        tz = "+00:00"
    elif ":" not in tz:
        # journalctl -o short-iso on older systemd prints +0100
        tz = f"{tz[:3]}:{tz[3:]}"
    try:
        return int(datetime.fromisoformat(dt_str + tz).timestamp())
    except ValueError:
        return None


def parse_timestamp(line: str, assumed_year: int | None = None) -> int | None:
    """Return epoch seconds for the timestamp prefix of a log line.

    ISO-8601 prefixes carry their own year and offset. Classic syslog prefixes
    (``Mar  1 10:15:30``) are read as local time in ``assumed_year``, falling
    back to the current year.
    """
    m = _ISO_RE.match(line)
    if m:
        return _parse_iso(m.group("dt"), m.group("tz"))

    m = _CLASSIC_RE.match(line)
    if m:
        month = _MONTHS.get(m.group("mon"))
        if month is None:
            return None
        year = assumed_year if assumed_year is not None else datetime.now().year
        try:
            dt = datetime(
                year,
                month,
                int(m.group("day")),
                int(m.group("h")),
                int(m.group("mi")),
                int(m.group("s")),
            )
        except ValueError:
            return None
        return int(dt.timestamp())

    return None


def reference_year(path: str | Path) -> int | None:
    """Best-guess year for a log file's year-less lines (its mtime year)."""
    try:
        mtime = Path(path).stat().st_mtime
    except OSError:
        return None
    return datetime.fromtimestamp(mtime).year


def server_tz() -> str:
    """Name of the server's local timezone."""
    env = os.getenv("TZ")
    if env:
        return env
    return datetime.now().astimezone().tzname() or "UTC"
