"""Time-window helpers.

Builds the four dashboard window shapes (live, today, week, month) in the
server's local time. All shapes share :class:`TimeWindow`; they only differ in
their bucket bounds, labels and the categories they report.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum

from .models import Category

LIVE_SPAN = 3600
LIVE_STEP = 300


class WindowKind(str, Enum):
    LIVE = "live"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


ALL_CATEGORIES: tuple[Category, ...] = tuple(Category)
WITHOUT_AUTH_FAIL: tuple[Category, ...] = tuple(c for c in Category if c is not Category.AUTH_FAIL)
FLOW_CATEGORIES: tuple[Category, ...] = (
    Category.INCOMING,
    Category.SENT,
    Category.FAILED_DELIVERY,
)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Ordered buckets with closed [start, end] bounds, one label per bucket.

    ``step`` enables O(1) lookup for uniform buckets and ``hourly`` maps an
    event to its local hour of day; otherwise buckets are scanned in order.
    """

    kind: WindowKind
    labels: tuple[str, ...]
    bounds: tuple[tuple[int, int], ...]
    categories: tuple[Category, ...]
    step: int | None = None
    hourly: bool = False

    @property
    def start(self) -> int:
        return self.bounds[0][0]

    @property
    def end(self) -> int:
        return self.bounds[-1][1]

    def bucket_of(self, ts: int) -> int | None:
        """Index of the bucket containing ts, or None when outside the window."""
        if ts < self.start or ts > self.end:
            return None

        if self.step:
            offset = ts - self.start
            # A timestamp on a shared edge belongs to the bucket it closes.
            idx = 0 if offset == 0 else (offset - 1) // self.step
        elif self.hourly:
            idx = datetime.fromtimestamp(ts).hour
        else:
            for i, (lo, hi) in enumerate(self.bounds):
                if lo <= ts <= hi:
                    return i
            return None

        return idx if 0 <= idx < len(self.bounds) else None


def _midnight(d: date) -> int:
    return int(datetime.combine(d, time()).timestamp())


def live_window(now: int) -> TimeWindow:
    start = now - LIVE_SPAN
    count = LIVE_SPAN // LIVE_STEP
    bounds = tuple(
        (start + i * LIVE_STEP, start + (i + 1) * LIVE_STEP) for i in range(count)
    )
    labels = tuple(datetime.fromtimestamp(lo).strftime("%H:%M") for lo, _ in bounds)
    return TimeWindow(
        kind=WindowKind.LIVE,
        labels=labels,
        bounds=bounds,
        categories=ALL_CATEGORIES,
        step=LIVE_STEP,
    )


def today_window(now: int) -> TimeWindow:
    day = datetime.fromtimestamp(now).date()
    starts = [
        int(datetime.combine(day, time(hour=h)).timestamp()) for h in range(24)
    ]
    starts.append(_midnight(day + timedelta(days=1)))
    bounds = tuple((starts[h], starts[h + 1] - 1) for h in range(24))
    labels = tuple(f"{h:02d}:00" for h in range(24))
    return TimeWindow(
        kind=WindowKind.TODAY,
        labels=labels,
        bounds=bounds,
        categories=WITHOUT_AUTH_FAIL,
        hourly=True,
    )


def _trailing_days_window(
    now: int, days: int, kind: WindowKind, categories: tuple[Category, ...]
) -> TimeWindow:
    today = datetime.fromtimestamp(now).date()
    day_list = [today - timedelta(days=i) for i in range(days - 1, -1, -1)]
    starts = [_midnight(d) for d in day_list]
    ends = [s - 1 for s in starts[1:]]
    ends.append(now)  # the current day stops at "now"
    labels = tuple(f"{d:%b} {d.day}" for d in day_list)
    return TimeWindow(
        kind=kind,
        labels=labels,
        bounds=tuple(zip(starts, ends)),
        categories=categories,
    )


def week_window(now: int) -> TimeWindow:
    return _trailing_days_window(now, 7, WindowKind.WEEK, WITHOUT_AUTH_FAIL)


def month_window(now: int) -> TimeWindow:
    return _trailing_days_window(now, 30, WindowKind.MONTH, FLOW_CATEGORIES)


def build_window(kind: WindowKind, now: int) -> TimeWindow:
    if kind is WindowKind.LIVE:
        return live_window(now)
    if kind is WindowKind.TODAY:
        return today_window(now)
    if kind is WindowKind.WEEK:
        return week_window(now)
    if kind is WindowKind.MONTH:
        return month_window(now)
    raise ValueError(f"Unknown window kind: {kind}")


def day_start(now: int, days_back: int = 0) -> int:
    """Local midnight ``days_back`` days before the day containing now."""
    return _midnight(datetime.fromtimestamp(now).date() - timedelta(days=days_back))
