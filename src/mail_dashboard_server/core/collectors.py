"""One-shot system probes (queue, sessions, host facts, totals).

Each collector runs one or a few commands through the executor and parses
their output; a failed command yields zero/empty values, never an exception.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .config import (
    BIN_DF,
    BIN_DOVEADM,
    BIN_FREE,
    BIN_HOSTNAMECTL,
    BIN_POSTQUEUE,
    BIN_SS,
    BIN_UPTIME,
    BIN_ZGREP,
)
from .executor import CommandResult, CommandRunner
from .schemas import DiskInfo, MemoryInfo, QueueStatus, SessionCounts, SystemFacts, TotalsReport

_QUEUE_ID_RE = re.compile(r"^[*!]?[A-F0-9]{10,}")
_MEM_RE = re.compile(r"^Mem:\s+(\d+)\s+(\d+)")
_HOST_KEYS = ("Static hostname:", "Operating System:", "Kernel:")
_IMAP_PORTS = (993, 143)
_POP3_PORTS = (995, 110)


def collect_queue(runner: CommandRunner) -> QueueStatus:
    result = runner([BIN_POSTQUEUE, "-p"], 8)
    if not result.stdout.strip():
        return QueueStatus(ok=False, error="postqueue_failed")

    total = 0
    deferred = 0
    for ln in result.stdout.splitlines():
        if _QUEUE_ID_RE.match(ln):
            total += 1
        if "deferred" in ln.lower():
            deferred += 1
    return QueueStatus(ok=True, total=total, deferred=deferred)


def _established_count(result: CommandResult) -> int:
    """Rows of ``ss`` output minus its header."""
    if result.exit_code != 0:
        return 0
    return max(0, len(result.stdout.splitlines()) - 1)


def _ss_sessions(runner: CommandRunner, ports: Sequence[int]) -> int:
    return sum(
        _established_count(
            runner([BIN_SS, "-tn", "state", "established", "sport", "=", f":{port}"], 4)
        )
        for port in ports
    )


def collect_sessions(runner: CommandRunner) -> SessionCounts:
    result = runner([BIN_DOVEADM, "who"], 5)
    if result.exit_code == 0 and result.stdout.strip():
        imap = pop3 = 0
        for ln in result.stdout.strip().splitlines():
            lower = ln.lower()
            if "imap" in lower:
                imap += 1
            if "pop3" in lower:
                pop3 += 1
        return SessionCounts(imap=imap, pop3=pop3, total=imap + pop3)

    # doveadm unavailable: count established TCP connections on the mail ports.
    imap = _ss_sessions(runner, _IMAP_PORTS)
    pop3 = _ss_sessions(runner, _POP3_PORTS)
    return SessionCounts(imap=imap, pop3=pop3, total=imap + pop3)


def parse_memory(output: str) -> MemoryInfo:
    for ln in output.splitlines():
        m = _MEM_RE.match(ln)
        if m:
            return MemoryInfo(total=int(m.group(1)), used=int(m.group(2)))
    return MemoryInfo()


def parse_disk(output: str) -> DiskInfo:
    rows = output.strip().splitlines()
    if len(rows) < 2:
        return DiskInfo()
    parts = rows[1].split()
    fields = ("fs", "size", "used", "avail", "usep", "mount")
    values = {name: parts[i] for i, name in enumerate(fields) if i < len(parts)}
    return DiskInfo(**values)


def parse_host(output: str) -> str:
    lines = [
        ln.strip()
        for ln in output.splitlines()
        if any(key.lower() in ln.lower() for key in _HOST_KEYS)
    ]
    return " | ".join(lines)


def collect_system(runner: CommandRunner) -> SystemFacts:
    uptime = runner([BIN_UPTIME], 3).stdout
    mem = runner([BIN_FREE, "-m"], 3).stdout
    disk = runner([BIN_DF, "-hP", "/"], 3).stdout
    host = runner([BIN_HOSTNAMECTL, "status"], 3).stdout
    return SystemFacts(
        uptime=" ".join(uptime.split()),
        mem_mb=parse_memory(mem),
        disk_root=parse_disk(disk),
        host=parse_host(host),
    )


def collect_totals(runner: CommandRunner, files: Sequence[str]) -> TotalsReport:
    """Count ``status=sent`` lines across every candidate file (rotated ones included)."""
    if not files:
        return TotalsReport(total_sent=0)
    result = runner([BIN_ZGREP, "-h", "-a", "-E", "-c", "status=sent", *files], 12)
    total = 0
    for row in result.stdout.split():
        if row.strip().isdigit():
            total += int(row)
    return TotalsReport(total_sent=total)
