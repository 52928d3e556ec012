"""Runtime configuration.

Defaults mirror a stock Debian/RHEL mail host (Postfix + Dovecot). Every value
can be overridden through ``MAIL_DASHBOARD_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

BIN_SUDO = "sudo"
BIN_POSTQUEUE = "/usr/sbin/postqueue"
BIN_DOVEADM = "/usr/bin/doveadm"
BIN_SS = "/usr/bin/ss"
BIN_ZGREP = "/usr/bin/zgrep"
BIN_GREP = "/usr/bin/grep"
BIN_DF = "/usr/bin/df"
BIN_FREE = "/usr/bin/free"
BIN_UPTIME = "/usr/bin/uptime"
BIN_HOSTNAMECTL = "/usr/bin/hostnamectl"
BIN_JOURNALCTL = "/usr/bin/journalctl"

DEFAULT_LOG_GLOBS = (
    "/var/log/mail.log*",
    "/var/log/maillog*",
    "/var/log/mail/*.log*",
)
DEFAULT_JOURNAL_UNITS = ("postfix", "dovecot")
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True, slots=True)
class Thresholds:
    auth_fail_warn: int = 50
    auth_fail_attack: int = 300
    queue_warn: int = 20
    queue_high: int = 200
    stale_log_minutes: int = 15

    def to_dict(self) -> dict[str, int]:
        return {
            "auth_fail_warn": self.auth_fail_warn,
            "auth_fail_attack": self.auth_fail_attack,
            "queue_warn": self.queue_warn,
            "queue_high": self.queue_high,
            "stale_log_minutes": self.stale_log_minutes,
        }


@dataclass(frozen=True, slots=True)
class DashboardConfig:
    cache_dir: Path = Path(".cache")
    use_sudo: bool = True
    source_ttl: int = 3600
    scan_timeout: int = 15
    archive_timeout: int = 12
    journal_timeout: int = 10
    journal_max_entries: int = 20000
    log_globs: tuple[str, ...] = DEFAULT_LOG_GLOBS
    journal_units: tuple[str, ...] = DEFAULT_JOURNAL_UNITS
    thresholds: Thresholds = field(default_factory=Thresholds)

    @property
    def source_cache_path(self) -> Path:
        return self.cache_dir / "logsource.json"

    @property
    def index_cache_path(self) -> Path:
        return self.cache_dir / "index.json"

    @property
    def agg_cache_path(self) -> Path:
        return self.cache_dir / "agg.json"


def _env_int(name: str, *, minimum: int = 1) -> int | None:
    env = os.getenv(name)
    if env is None or env == "":
        return None
    try:
        value = int(env)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _env_bool(name: str) -> bool | None:
    env = os.getenv(name)
    if env is None or env == "":
        return None
    value = env.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (true/false)")


def _env_list(name: str, sep: str) -> tuple[str, ...] | None:
    env = os.getenv(name)
    if env is None or env.strip() == "":
        return None
    items = tuple(s.strip() for s in env.split(sep) if s.strip())
    if not items:
        raise ValueError(f"{name} must contain at least one entry")
    return items


def resolve_config(cfg: DashboardConfig | None = None) -> DashboardConfig:
    """Return config with environment overrides applied."""
    if cfg is None:
        cfg = DashboardConfig()

    overrides: dict[str, object] = {}

    cache_dir = os.getenv("MAIL_DASHBOARD_CACHE_DIR")
    if cache_dir:
        overrides["cache_dir"] = Path(cache_dir).expanduser()

    use_sudo = _env_bool("MAIL_DASHBOARD_USE_SUDO")
    if use_sudo is not None:
        overrides["use_sudo"] = use_sudo

    ttl = _env_int("MAIL_DASHBOARD_SOURCE_TTL", minimum=0)
    if ttl is not None:
        overrides["source_ttl"] = ttl

    scan_timeout = _env_int("MAIL_DASHBOARD_SCAN_TIMEOUT")
    if scan_timeout is not None:
        overrides["scan_timeout"] = scan_timeout

    globs = _env_list("MAIL_DASHBOARD_LOG_GLOBS", ":")
    if globs is not None:
        overrides["log_globs"] = globs

    units = _env_list("MAIL_DASHBOARD_JOURNAL_UNITS", ",")
    if units is not None:
        overrides["journal_units"] = units

    if not overrides:
        return cfg
    return replace(cfg, **overrides)


def resolve_bind() -> tuple[str, int]:
    """Return the HTTP host and port from the environment."""
    host = os.getenv("MAIL_DASHBOARD_HOST") or DEFAULT_HOST
    port = _env_int("MAIL_DASHBOARD_PORT")
    if port is None:
        return host, DEFAULT_PORT
    if port > 65535:
        raise ValueError("MAIL_DASHBOARD_PORT must be <= 65535")
    return host, port
