"""Run the dashboard server with ``python -m mail_dashboard_server``."""

from __future__ import annotations

from mail_dashboard_server.server.dashboard_server import main

if __name__ == "__main__":
    main()
