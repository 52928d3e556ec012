"""Acquisition of relevant mail log lines.

Three strategies, picked on every call from the current source descriptor:

- plain: stream the active uncompressed log file and filter while reading
- archive: ``zgrep`` the pre-filter across all candidate files at once
- journal: query the last N journal entries of the mail units
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import AsyncIterator, Sequence
from enum import Enum
from pathlib import Path

import aiofiles

from .classify import PREFILTER_PATTERN, is_relevant
from .config import BIN_JOURNALCTL, BIN_ZGREP, DEFAULT_JOURNAL_UNITS
from .executor import CommandRunner
from .models import RawLine, SourceDescriptor, SourceMode
from .source import SourceResolver
from .timestamps import parse_timestamp, reference_year

logger = logging.getLogger(__name__)

COMPRESSED_SUFFIXES = (".gz",)
_ACTIVE_LOG_RE = re.compile(r"/maillog$|/mail\.log$")


class Strategy(str, Enum):
    PLAIN = "plain"
    ARCHIVE = "archive"
    JOURNAL = "journal"
    NONE = "none"


def active_plain_file(files: Sequence[str]) -> str | None:
    """Pick the live log file: ``maillog``/``mail.log`` first, else the first uncompressed one."""
    plain = [f for f in files if not f.endswith(COMPRESSED_SUFFIXES)]
    for f in plain:
        if _ACTIVE_LOG_RE.search(f):
            return f
    return plain[0] if plain else None


def select_strategy(descriptor: SourceDescriptor) -> tuple[Strategy, str | None]:
    """Return the strategy for this descriptor and, for plain scans, the file."""
    if descriptor.mode is SourceMode.JOURNAL:
        return Strategy.JOURNAL, None
    if descriptor.mode is SourceMode.NONE or not descriptor.files:
        return Strategy.NONE, None

    plain = active_plain_file(descriptor.files)
    if plain is not None and os.access(plain, os.R_OK):
        return Strategy.PLAIN, plain
    return Strategy.ARCHIVE, None


async def iter_plain_lines(
    path: str | Path,
    *,
    start_ts: int | None = None,
    encoding: str = "utf-8",
    decode_errors: str = "replace",
) -> AsyncIterator[RawLine]:
    """Yield relevant, timestamped lines at or after start_ts.

    Each call re-opens the file; no cursor is kept between calls.
    """
    year = reference_year(path)
    async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
        async for line in f:
            line = line.rstrip("\r\n")
            if not is_relevant(line):
                continue
            ts = parse_timestamp(line, year)
            if ts is None:
                continue
            if start_ts is not None and ts < start_ts:
                continue
            yield RawLine(text=line, reference_year=year)


class LineReader:
    """Returns the relevant lines of whichever source is currently resolved."""

    def __init__(
        self,
        *,
        resolver: SourceResolver,
        runner: CommandRunner,
        journal_units: Sequence[str] = DEFAULT_JOURNAL_UNITS,
        archive_timeout: float = 12,
        journal_timeout: float = 10,
        journal_max_entries: int = 20000,
    ) -> None:
        self.resolver = resolver
        self.runner = runner
        self.journal_units = tuple(journal_units)
        self.archive_timeout = archive_timeout
        self.journal_timeout = journal_timeout
        self.journal_max_entries = journal_max_entries

    async def descriptor(self) -> SourceDescriptor:
        return await asyncio.to_thread(self.resolver.resolve, False)

    async def relevant_lines(self, start_ts: int | None = None) -> list[RawLine]:
        """Relevant lines of the current source.

        Plain and journal scans drop lines before start_ts; archive scans
        cannot and return every match for the caller to post-filter.
        """
        descriptor = await self.descriptor()
        strategy, plain = select_strategy(descriptor)
        logger.debug("Reading mail lines via %s strategy", strategy.value)

        if strategy is Strategy.PLAIN:
            return [raw async for raw in iter_plain_lines(plain, start_ts=start_ts)]
        if strategy is Strategy.ARCHIVE:
            return await asyncio.to_thread(self._archive_lines, descriptor.files)
        if strategy is Strategy.JOURNAL:
            return await asyncio.to_thread(self._journal_lines, start_ts)
        return []

    def _archive_lines(self, files: Sequence[str]) -> list[RawLine]:
        if not files:
            return []
        argv = [BIN_ZGREP, "-h", "-a", "-i", "-E", PREFILTER_PATTERN, *files]
        result = self.runner(argv, self.archive_timeout)
        return [RawLine(text=ln) for ln in result.stdout.splitlines() if ln.strip()]

    def _journal_lines(self, start_ts: int | None) -> list[RawLine]:
        argv = [
            BIN_JOURNALCTL,
            "--no-pager",
            "-o",
            "short-iso",
            "-n",
            str(self.journal_max_entries),
        ]
        for unit in self.journal_units:
            argv += ["-u", unit]
        result = self.runner(argv, self.journal_timeout)

        lines: list[RawLine] = []
        for ln in result.stdout.splitlines():
            if not is_relevant(ln):
                continue
            ts = parse_timestamp(ln)
            if ts is None:
                continue
            if start_ts is not None and ts < start_ts:
                continue
            lines.append(RawLine(text=ln))
        return lines
