"""Log source discovery.

Decides whether mail data comes from rotating log files or from the systemd
journal. The decision is cached (see :class:`SourceCache`) and only recomputed
when forced or when the cached one is older than the TTL.
"""

from __future__ import annotations

import glob
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from .cache import SourceCache
from .config import (
    BIN_DOVEADM,
    BIN_GREP,
    BIN_JOURNALCTL,
    BIN_POSTQUEUE,
    BIN_ZGREP,
    DEFAULT_JOURNAL_UNITS,
    DEFAULT_LOG_GLOBS,
)
from .executor import CommandRunner
from .models import ScanRecord, SourceDescriptor, SourceMode
from .timestamps import server_tz

logger = logging.getLogger(__name__)

DIAGNOSTIC_BINARIES: dict[str, str] = {
    "grep": BIN_GREP,
    "zgrep": BIN_ZGREP,
    "journalctl": BIN_JOURNALCTL,
    "postqueue": BIN_POSTQUEUE,
    "doveadm": BIN_DOVEADM,
}


def list_files_for_glob(pattern: str) -> list[str]:
    """Return files matching pattern, sorted for stable re-scans."""
    return sorted(glob.glob(pattern))


def binaries_present(binaries: Mapping[str, str] = DIAGNOSTIC_BINARIES) -> dict[str, bool]:
    return {name: Path(path).is_file() for name, path in binaries.items()}


class SourceResolver:
    """Read-through cache around log source detection."""

    def __init__(
        self,
        *,
        cache: SourceCache,
        runner: CommandRunner,
        log_globs: Sequence[str] = DEFAULT_LOG_GLOBS,
        journal_units: Sequence[str] = DEFAULT_JOURNAL_UNITS,
        ttl: int = 3600,
        probe_timeout: float = 15,
        clock: Callable[[], float] = time.time,
        list_files: Callable[[str], list[str]] = list_files_for_glob,
        binaries: Mapping[str, str] = DIAGNOSTIC_BINARIES,
    ) -> None:
        self.cache = cache
        self.runner = runner
        self.log_globs = tuple(log_globs)
        self.journal_units = tuple(journal_units)
        self.ttl = ttl
        self.probe_timeout = probe_timeout
        self.clock = clock
        self.list_files = list_files
        self.binaries = dict(binaries)

    def resolve(self, force: bool = False) -> SourceDescriptor:
        now = int(self.clock())
        if not force:
            cached = self.cache.read()
            if cached is not None and now - cached.decided_at < self.ttl:
                return cached

        descriptor = self._detect(now)
        # Persisted even when nothing was found so the probes are not repeated per request.
        self.cache.write(descriptor)
        logger.info(
            "Log source resolved: mode=%s pattern=%s files=%d",
            descriptor.mode.value,
            descriptor.pattern,
            len(descriptor.files),
        )
        return descriptor

    def _detect(self, now: int) -> SourceDescriptor:
        scanned: list[ScanRecord] = []
        for pattern in self.log_globs:
            files = self.list_files(pattern)
            scanned.append(ScanRecord(pattern=pattern, files_found=len(files)))
            if files:
                return SourceDescriptor(
                    mode=SourceMode.FILE_GLOB,
                    decided_at=now,
                    pattern=pattern,
                    files=tuple(sorted(files)),
                    scan_report=tuple(scanned),
                    binaries=binaries_present(self.binaries),
                    server_tz=server_tz(),
                )

        mode = SourceMode.JOURNAL if self._journal_reachable() else SourceMode.NONE
        return SourceDescriptor(
            mode=mode,
            decided_at=now,
            pattern="journal" if mode is SourceMode.JOURNAL else None,
            files=(),
            scan_report=tuple(scanned),
            binaries=binaries_present(self.binaries),
            server_tz=server_tz(),
        )

    def _journal_reachable(self) -> bool:
        argv = [BIN_JOURNALCTL, "--no-pager", "-n", "1"]
        for unit in self.journal_units:
            argv += ["-u", unit]
        result = self.runner(argv, self.probe_timeout)
        if not result.ok:
            logger.debug("Journal probe failed (exit=%s)", result.exit_code)
        return result.ok
