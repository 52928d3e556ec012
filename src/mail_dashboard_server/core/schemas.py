"""Fixed-shape API payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class QueueStatus(BaseModel):
    ok: bool
    total: int = 0
    deferred: int = 0
    error: str | None = None


class SessionCounts(BaseModel):
    imap: int = 0
    pop3: int = 0
    total: int = 0


class MemoryInfo(BaseModel):
    total: int = Field(default=0, description="Total RAM in MiB.")
    used: int = Field(default=0, description="Used RAM in MiB.")


class DiskInfo(BaseModel):
    fs: str = ""
    size: str = ""
    used: str = ""
    avail: str = ""
    usep: str = ""
    mount: str = "/"


class SystemFacts(BaseModel):
    uptime: str = ""
    mem_mb: MemoryInfo = Field(default_factory=MemoryInfo)
    disk_root: DiskInfo = Field(default_factory=DiskInfo)
    host: str = ""


class TotalsReport(BaseModel):
    total_sent: int = 0


class TodayStats(BaseModel):
    date: str
    sent: int = 0
    failed_delivery: int = 0
    incoming: int = 0
    greylisted: int = 0
    rbl_reject: int = 0
    rejected: int = 0
    spam_virus: int = 0
    quota_fail: int = 0
    auth_fail: int = 0
    success_rate: float = Field(description="sent / incoming in percent, one decimal.")


class HealthReport(BaseModel):
    source: dict[str, Any] = Field(description="Resolved log source descriptor.")
    readable_files: list[str] = Field(default_factory=list)
    bins_present: dict[str, bool] = Field(default_factory=dict)
    sudo_mode_used: bool = True
    server_tz: str = "UTC"
    strategy: str = Field(description="Line acquisition strategy: plain, archive, journal or none.")
    active_plain: str | None = None
    recent_60s_rows: int = 0
    note: str = ""
    warnings: list[str] = Field(default_factory=list)
    last_log_update_ts: int = 0
