from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace

from mail_dashboard_server.core.config import resolve_config
from mail_dashboard_server.core.dashboard_service import MailDashboard
from mail_dashboard_server.tools.dashboard import API_HANDLERS, UnknownApiError, call_api_impl


def main() -> None:
    """CLI entrypoint: print one dashboard payload as JSON."""
    p = argparse.ArgumentParser(description="Mail dashboard API from the command line.")
    p.add_argument("name", help=f"API name ({', '.join(API_HANDLERS)})")
    p.add_argument("--no-sudo", action="store_true", help="Run probes without sudo -n")
    p.add_argument("--rescan", action="store_true", help="Ignore the cached log source decision")
    p.add_argument("--indent", type=int, default=2)

    args = p.parse_args()

    try:
        cfg = resolve_config()
        if args.no_sudo:
            cfg = replace(cfg, use_sudo=False)
        dashboard = MailDashboard(cfg)
        if args.rescan:
            dashboard.resolver.resolve(force=True)
        payload = asyncio.run(call_api_impl(dashboard, args.name))
    except UnknownApiError:
        print(f"Error: unknown API '{args.name}'", file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    print(json.dumps(payload, indent=args.indent, ensure_ascii=False))


if __name__ == "__main__":
    main()
