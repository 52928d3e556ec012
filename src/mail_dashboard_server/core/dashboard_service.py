"""Dashboard service.

This module is the main integration point: it wires the source resolver, line
reader and collectors together and returns the payload behind each API name.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from .aggregate import aggregate, iter_events
from .cache import JsonFileCache, SourceCache
from .collectors import collect_queue, collect_sessions, collect_system, collect_totals
from .config import BIN_SUDO, DashboardConfig
from .executor import CommandRunner, make_runner
from .log_reader import LineReader, Strategy, active_plain_file, select_strategy
from .models import Category, SourceDescriptor, SourceMode
from .schemas import HealthReport, QueueStatus, SessionCounts, SystemFacts, TodayStats, TotalsReport
from .source import SourceResolver
from .talkers import DEFAULT_LIMIT, top_talkers
from .time_window import WindowKind, day_start
from .timestamps import parse_timestamp

RECENT_WINDOW = 60

# Talker periods: days back from today's local midnight.
TALKER_PERIODS: dict[str, int] = {"day": 0, "week": 6, "month": 29}

_STRATEGY_NOTES = {
    Strategy.PLAIN: "using plain file for live/today",
    Strategy.ARCHIVE: "using zgrep over files",
    Strategy.JOURNAL: "journal fallback",
    Strategy.NONE: "no log source found",
}


class MailDashboard:
    def __init__(
        self,
        cfg: DashboardConfig,
        *,
        runner: CommandRunner | None = None,
        clock: Callable[[], float] = time.time,
        resolver: SourceResolver | None = None,
    ) -> None:
        self.cfg = cfg
        self.runner = runner or make_runner(cfg)
        self.clock = clock
        self.index_cache = JsonFileCache(cfg.index_cache_path)
        self.agg_cache = JsonFileCache(cfg.agg_cache_path)
        self.resolver = resolver or SourceResolver(
            cache=SourceCache(JsonFileCache(cfg.source_cache_path)),
            runner=self.runner,
            log_globs=cfg.log_globs,
            journal_units=cfg.journal_units,
            ttl=cfg.source_ttl,
            probe_timeout=cfg.scan_timeout,
            clock=clock,
        )
        self.reader = LineReader(
            resolver=self.resolver,
            runner=self.runner,
            journal_units=cfg.journal_units,
            archive_timeout=cfg.archive_timeout,
            journal_timeout=cfg.journal_timeout,
            journal_max_entries=cfg.journal_max_entries,
        )

    def now(self) -> int:
        return int(self.clock())

    async def _descriptor(self, force: bool = False) -> SourceDescriptor:
        return await asyncio.to_thread(self.resolver.resolve, force)

    def _record_index(self, descriptor: SourceDescriptor) -> dict[str, Any]:
        meta = {"files": len(descriptor.files), "updated": descriptor.decided_at}
        if self.index_cache.read() != meta:
            self.index_cache.write(meta)
        return meta

    async def source(self, force: bool = False) -> dict[str, Any]:
        descriptor = await self._descriptor(force)
        out = descriptor.to_dict()
        out["index_meta"] = self._record_index(descriptor)
        out["agg_ts"] = int((self.agg_cache.read() or {}).get("updated_at", 0))
        return out

    async def today(self) -> TodayStats:
        now = self.now()
        start = day_start(now)
        lines = await self.reader.relevant_lines(start)
        counts: Counter[Category] = Counter(
            e.category for e in iter_events(lines) if start <= e.timestamp <= now
        )
        incoming = max(1, counts[Category.INCOMING])
        dt = datetime.fromtimestamp(now)
        return TodayStats(
            date=f"{dt:%b} {dt.day}",
            **{c.value: counts[c] for c in Category},
            success_rate=round(counts[Category.SENT] / incoming * 100, 1),
        )

    async def series(self, kind: WindowKind) -> dict[str, Any]:
        now = self.now()
        result = await aggregate(self.reader, kind, now)
        self.agg_cache.write({"updated_at": now, "kind": kind.value})
        return result.to_dict()

    async def top(self, period: str, limit: int = DEFAULT_LIMIT) -> dict[str, dict[str, int]]:
        if period not in TALKER_PERIODS:
            valid = ", ".join(TALKER_PERIODS)
            raise ValueError(f"Unknown period '{period}'. Valid values: {valid}.")
        now = self.now()
        start = day_start(now, TALKER_PERIODS[period])
        table = await top_talkers(self.reader, start, now=now, limit=limit)
        return table.to_dict()

    async def health(self) -> HealthReport:
        now = self.now()
        descriptor = await self._descriptor()
        strategy, plain = select_strategy(descriptor)

        last_update = 0
        candidate = plain or active_plain_file(descriptor.files)
        if candidate is not None:
            try:
                last_update = int(Path(candidate).stat().st_mtime)
            except OSError:
                last_update = 0

        since = now - RECENT_WINDOW
        recent = sum(
            1
            for raw in await self.reader.relevant_lines(since)
            if (ts := parse_timestamp(raw.text, raw.reference_year)) is not None and ts >= since
        )

        warnings: list[str] = []
        if not descriptor.files and descriptor.mode is not SourceMode.JOURNAL:
            warnings.append("no_readable_log_files")
        if not descriptor.binaries.get("zgrep", False):
            warnings.append("zgrep_missing")
        if self.cfg.use_sudo and shutil.which(BIN_SUDO) is None:
            warnings.append("sudo_missing")
        stale_after = self.cfg.thresholds.stale_log_minutes * 60
        if last_update and now - last_update > stale_after:
            warnings.append("stale_log")

        return HealthReport(
            source=descriptor.to_dict(),
            readable_files=list(descriptor.files),
            bins_present=dict(descriptor.binaries),
            sudo_mode_used=self.cfg.use_sudo,
            server_tz=descriptor.server_tz,
            strategy=strategy.value,
            active_plain=plain,
            recent_60s_rows=recent,
            note=_STRATEGY_NOTES[strategy],
            warnings=warnings,
            last_log_update_ts=last_update,
        )

    async def totals(self) -> TotalsReport:
        descriptor = await self._descriptor()
        return await asyncio.to_thread(collect_totals, self.runner, descriptor.files)

    async def queue(self) -> QueueStatus:
        return await asyncio.to_thread(collect_queue, self.runner)

    async def sessions(self) -> SessionCounts:
        return await asyncio.to_thread(collect_sessions, self.runner)

    async def system(self) -> SystemFacts:
        return await asyncio.to_thread(collect_system, self.runner)
