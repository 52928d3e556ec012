"""Dashboard API implementations.

This module contains the *implementation* behind both the MCP tools and the
HTTP ``/api/{name}`` routes. Keep this layer thin: validate inputs, translate
them into core calls, and return JSON-serializable data structures.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from mail_dashboard_server.core.dashboard_service import TALKER_PERIODS, MailDashboard
from mail_dashboard_server.core.time_window import WindowKind

ApiHandler = Callable[[MailDashboard], Awaitable[Any]]

ALL_WINDOWS = [k.value for k in WindowKind]


class UnknownApiError(ValueError):
    """Raised for API names the dashboard does not serve."""


def _to_json(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


def _parse_window(kind: str) -> WindowKind:
    try:
        return WindowKind(kind.strip().lower())
    except ValueError as e:
        valid = ", ".join(ALL_WINDOWS)
        raise ValueError(f"Unknown window '{kind}'. Valid values: {valid}.") from e


async def _ping(dashboard: MailDashboard) -> dict[str, Any]:
    return {"ok": True, "time": int(time.time())}


async def _config(dashboard: MailDashboard) -> dict[str, Any]:
    return {"thresholds": dashboard.cfg.thresholds.to_dict()}


def _series(kind: WindowKind) -> ApiHandler:
    async def handler(dashboard: MailDashboard) -> dict[str, Any]:
        return await dashboard.series(kind)

    return handler


def _top(period: str) -> ApiHandler:
    async def handler(dashboard: MailDashboard) -> dict[str, Any]:
        return await dashboard.top(period)

    return handler


API_HANDLERS: dict[str, ApiHandler] = {
    "ping": _ping,
    "config": _config,
    "health": lambda d: d.health(),
    "source": lambda d: d.source(),
    "today": lambda d: d.today(),
    "totals": lambda d: d.totals(),
    "queue": lambda d: d.queue(),
    "sessions": lambda d: d.sessions(),
    "system": lambda d: d.system(),
    **{f"series_{k.value}": _series(k) for k in WindowKind},
    **{f"top_{p}": _top(p) for p in TALKER_PERIODS},
}


async def call_api_impl(dashboard: MailDashboard, name: str) -> Any:
    """Run the handler registered for name and return its JSON payload."""
    handler = API_HANDLERS.get(name)
    if handler is None:
        raise UnknownApiError(name)
    return _to_json(await handler(dashboard))


async def mail_series_impl(dashboard: MailDashboard, *, window: str) -> dict[str, Any]:
    return await dashboard.series(_parse_window(window))


async def top_talkers_impl(
    dashboard: MailDashboard,
    *,
    period: str = "day",
    limit: int | None = None,
) -> dict[str, Any]:
    if limit is None:
        limit = 10
    if limit <= 0:
        raise ValueError("limit must be > 0")
    return await dashboard.top(period.strip().lower(), limit=limit)


async def refresh_source_impl(dashboard: MailDashboard) -> dict[str, Any]:
    """Force a rescan of log candidates and the journal probe."""
    return await dashboard.source(force=True)
