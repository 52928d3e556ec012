"""Core data models for mail-flow statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Category(str, Enum):
    """Mail event categories, declared in matching precedence order."""

    SENT = "sent"
    FAILED_DELIVERY = "failed_delivery"
    INCOMING = "incoming"
    GREYLISTED = "greylisted"
    RBL_REJECT = "rbl_reject"
    REJECTED = "rejected"
    SPAM_VIRUS = "spam_virus"
    QUOTA_FAIL = "quota_fail"
    AUTH_FAIL = "auth_fail"


class SourceMode(str, Enum):
    """Where mail log data is read from."""

    FILE_GLOB = "file_glob"
    JOURNAL = "journal"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class ScanRecord:
    pattern: str
    files_found: int


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """Resolved log source plus the diagnostics gathered while resolving it."""

    mode: SourceMode
    decided_at: int
    pattern: str | None = None
    files: tuple[str, ...] = ()  # sorted lexicographically
    scan_report: tuple[ScanRecord, ...] = ()
    binaries: dict[str, bool] = field(default_factory=dict)
    server_tz: str = "UTC"

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "pattern": self.pattern,
            "files": list(self.files),
            "decided_at": self.decided_at,
            "scan_report": [
                {"pattern": r.pattern, "files_found": r.files_found} for r in self.scan_report
            ],
            "binaries": dict(self.binaries),
            "server_tz": self.server_tz,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceDescriptor:
        return cls(
            mode=SourceMode(data["mode"]),
            decided_at=int(data["decided_at"]),
            pattern=data.get("pattern"),
            files=tuple(str(f) for f in data.get("files", [])),
            scan_report=tuple(
                ScanRecord(pattern=str(r["pattern"]), files_found=int(r["files_found"]))
                for r in data.get("scan_report", [])
            ),
            binaries={str(k): bool(v) for k, v in data.get("binaries", {}).items()},
            server_tz=str(data.get("server_tz", "UTC")),
        )


@dataclass(frozen=True, slots=True)
class RawLine:
    """One relevant log line and the year to assume for year-less timestamps."""

    text: str
    reference_year: int | None = None


@dataclass(frozen=True, slots=True)
class ClassifiedEvent:
    timestamp: int
    category: Category


@dataclass(frozen=True, slots=True)
class TalkerTable:
    """Top senders and recipients, ordered by count descending."""

    senders: dict[str, int]
    recipients: dict[str, int]

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"senders": dict(self.senders), "recipients": dict(self.recipients)}
