"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from mail_dashboard_server.core.classify import CLASSIFICATION_RULES, PREFILTER_PATTERN, RegexRule
from mail_dashboard_server.core.config import resolve_config
from mail_dashboard_server.core.schemas import HealthReport, TodayStats


def classification_rules() -> dict[str, Any]:
    """Return the pre-filter and the ordered rule list as plain strings."""
    rules: list[dict[str, Any]] = []
    for rule, category in CLASSIFICATION_RULES:
        patterns = [p.pattern for p in rule.patterns] if isinstance(rule, RegexRule) else []
        rules.append({"category": category.value, "patterns": patterns})
    return {"prefilter": PREFILTER_PATTERN, "rules": rules}


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://mail-dashboard/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        cfg = resolve_config()
        return (
            "Resources:\n"
            "- app://mail-dashboard/help\n"
            "- app://mail-dashboard/config/thresholds\n"
            "- app://mail-dashboard/config/classification\n"
            "- app://mail-dashboard/schemas/health\n"
            "- app://mail-dashboard/schemas/today\n"
            f"\nLog candidates: {', '.join(cfg.log_globs)}\n"
            f"Journal units: {', '.join(cfg.journal_units)}\n"
            f"Cache directory: {cfg.cache_dir}\n"
        )

    @mcp.resource("app://mail-dashboard/config/thresholds")
    def thresholds() -> dict[str, int]:
        """Return the alerting thresholds used by the dashboard page."""
        return resolve_config().thresholds.to_dict()

    @mcp.resource("app://mail-dashboard/config/classification")
    def classification() -> dict[str, Any]:
        """Return the ordered classification rules (first match wins)."""
        return classification_rules()

    @mcp.resource("app://mail-dashboard/schemas/health")
    def health_schema() -> dict[str, Any]:
        """Return the JSON schema for health payloads."""
        return HealthReport.model_json_schema()

    @mcp.resource("app://mail-dashboard/schemas/today")
    def today_schema() -> dict[str, Any]:
        """Return the JSON schema for today's stats payload."""
        return TodayStats.model_json_schema()
