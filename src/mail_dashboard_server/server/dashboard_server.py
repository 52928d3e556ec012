"""Dashboard server entrypoint.

This module wires together:
- Tools: callable actions (e.g., today's mail flow, top talkers)
- Resources: addressable data blobs (e.g., thresholds, classification rules)
- Prompts: reusable conversation templates that clients can invoke
- HTTP routes: ``GET /api/{name}`` JSON endpoints polled by the dashboard page

Run locally:
    python -m mail_dashboard_server.server.dashboard_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from mail_dashboard_server.core.config import resolve_bind, resolve_config
from mail_dashboard_server.core.dashboard_service import MailDashboard
from mail_dashboard_server.prompts.registry import register_prompts
from mail_dashboard_server.resources.registry import register_resources
from mail_dashboard_server.tools.dashboard import (
    UnknownApiError,
    call_api_impl,
    mail_series_impl,
    refresh_source_impl,
    top_talkers_impl,
)

LOGGER = logging.getLogger(__name__)

TRANSPORTS = ("streamable-http", "sse", "stdio")


def _configure_logging() -> None:
    """Configure a reasonable default logging setup."""
    level_name = os.getenv("MAIL_DASHBOARD_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@lru_cache(maxsize=1)
def get_dashboard() -> MailDashboard:
    """Process-wide dashboard service built from the environment."""
    return MailDashboard(resolve_config())


_host, _port = resolve_bind()
mcp = FastMCP("mail-dashboard", json_response=True, host=_host, port=_port)

register_resources(mcp)
register_prompts(mcp)


async def api_response(name: str) -> JSONResponse:
    """Serve one API payload; failures become a JSON error object."""
    try:
        payload = await call_api_impl(get_dashboard(), name)
    except UnknownApiError:
        return JSONResponse({"error": "unknown_api"}, status_code=404)
    except Exception as exc:
        LOGGER.exception("API %s failed", name)
        return JSONResponse({"error": "exception", "message": str(exc)}, status_code=500)
    return JSONResponse(payload, headers={"Cache-Control": "no-store"})


@mcp.custom_route("/api/{name}", methods=["GET"])
async def api_route(request: Request) -> JSONResponse:
    return await api_response(request.path_params["name"])


@mcp.custom_route("/", methods=["GET"])
async def legacy_api_route(request: Request) -> JSONResponse:
    """``/?api=name`` form used by older dashboard pages."""
    name = request.query_params.get("api")
    if not name:
        return JSONResponse({"error": "unknown_api"}, status_code=404)
    return await api_response(name)


@mcp.tool()
async def mail_api(name: str) -> Any:
    """Return one dashboard payload by API name.

    Names: ping, config, health, source, today, totals, queue, sessions,
    system, series_live, series_today, series_week, series_month, top_day,
    top_week, top_month.
    """
    return await call_api_impl(get_dashboard(), name)


@mcp.tool()
async def mail_series(window: str = "live") -> dict[str, Any]:
    """Return per-category counts bucketed over a time window.

    Parameters
    ----------
    window:
        One of live (last hour, 5-minute buckets), today (hourly), week or
        month (daily buckets).

    Returns
    -------
    dict:
        {"labels": list[str], "<category>": list[int], ...}
    """
    return await mail_series_impl(get_dashboard(), window=window)


@mcp.tool()
async def top_talkers(period: str = "day", limit: int | None = None) -> dict[str, Any]:
    """Return the top senders and delivered-to recipients for day, week or month."""
    return await top_talkers_impl(get_dashboard(), period=period, limit=limit)


@mcp.tool()
async def refresh_log_source() -> dict[str, Any]:
    """Rescan log file candidates (and the journal) ignoring the cached decision."""
    return await refresh_source_impl(get_dashboard())


def main(argv: Sequence[str] | None = None) -> None:
    """Start the dashboard server."""
    _configure_logging()
    transport = os.getenv("MAIL_DASHBOARD_TRANSPORT", "streamable-http")
    if transport not in TRANSPORTS:
        raise ValueError(f"MAIL_DASHBOARD_TRANSPORT must be one of: {', '.join(TRANSPORTS)}")
    LOGGER.debug("Starting dashboard server (transport=%s)", transport)
    _ = argv or sys.argv[1:]
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
