"""MCP prompt registry.

Canned operator workflows that walk an MCP client through the dashboard tools.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from mail_dashboard_server.core.time_window import WindowKind


def register_prompts(mcp: FastMCP) -> None:
    """Attach the mail operator prompts to the server."""

    @mcp.prompt()
    def diagnose_mail_flow(window: str = "today") -> list[dict[str, Any]]:
        """Build a prompt that reviews mail server health for a time window."""
        valid = ", ".join(k.value for k in WindowKind)
        return [
            {
                "role": "system",
                "content": (
                    "You are a mail server operator. Use the dashboard tools to fetch data; "
                    "never guess counts. Be concise and point at concrete next steps."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Review the health of this mail server.\n"
                    "1. Call mail_api with name='health' and report the log source, "
                    "strategy and any warnings.\n"
                    "2. Call mail_api with name='today' and comment on the success rate, "
                    "rejections, spam/virus hits and auth failures.\n"
                    f"3. Call mail_series with window='{window}' (valid: {valid}) and point "
                    "out spikes or gaps.\n"
                    "4. Call mail_api with name='queue' and flag a growing deferred queue.\n"
                    "Finish with a short list of suspected issues, most severe first."
                ),
            },
        ]
