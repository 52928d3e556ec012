"""Time-bucketed aggregation of classified mail events."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from .classify import classify
from .log_reader import LineReader
from .models import Category, ClassifiedEvent, RawLine
from .time_window import TimeWindow, WindowKind, build_window
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AggregateSeries:
    window: TimeWindow
    counts: dict[Category, list[int]]

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"labels": list(self.window.labels)}
        for category, values in self.counts.items():
            out[category.value] = list(values)
        return out


def iter_events(lines: Iterable[RawLine]) -> Iterator[ClassifiedEvent]:
    """Timestamp and classify lines; lines failing either step are dropped."""
    for raw in lines:
        if not raw.text:
            continue
        ts = parse_timestamp(raw.text, raw.reference_year)
        if ts is None:
            continue
        category = classify(raw.text)
        if category is None:
            continue
        yield ClassifiedEvent(timestamp=ts, category=category)


def bucket_events(window: TimeWindow, events: Iterable[ClassifiedEvent]) -> AggregateSeries:
    counts = {c: [0] * len(window.labels) for c in window.categories}
    for event in events:
        series = counts.get(event.category)
        if series is None:
            continue
        idx = window.bucket_of(event.timestamp)
        if idx is None:
            continue
        series[idx] += 1
    return AggregateSeries(window=window, counts=counts)


async def aggregate(reader: LineReader, kind: WindowKind, now: int) -> AggregateSeries:
    """Build the window anchored at now and count the events falling in it."""
    window = build_window(kind, now)
    lines = await reader.relevant_lines(window.start)
    result = bucket_events(window, iter_events(lines))
    logger.debug("Aggregated %d lines into %s window", len(lines), kind.value)
    return result
