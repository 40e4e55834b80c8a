"""
main.py — CLI entry point for the editorial dashboard proxy.

Usage:
  python main.py --serve                      Start the HTTP API (uvicorn)
  python main.py --action top5 [--range 7daysAgo]
  python main.py --action articleContent --post-id 123
  python main.py --batch kpis,sources,top5    Run several actions at once
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from config import load_config, setup_logging

setup_logging()
logger = logging.getLogger("main")


def run_action(config: dict, action: str, params: dict) -> int:
    """Run one action and print the same envelope the HTTP API returns."""
    from actions.context import build_clients
    from actions.dispatcher import Dispatcher
    from errors import DashboardError

    dispatcher = Dispatcher(config, build_clients(config))
    try:
        data = asyncio.run(dispatcher.run(action, params))
    except DashboardError as exc:
        logger.error("Action %s failed: %s", action, exc)
        print(json.dumps({"success": False, "error": str(exc)}, indent=2, ensure_ascii=False))
        return 1
    print(json.dumps({"success": True, "data": data}, indent=2, ensure_ascii=False))
    return 0


def serve(host: str, port: int) -> None:
    import uvicorn
    logger.info("Serving dashboard API on %s:%d", host, port)
    uvicorn.run("server:app", host=host, port=port, log_level="info")


# ── CLI ───────────────────────────────────────────────────────────────────────

def main() -> int:
    parser = argparse.ArgumentParser(
        description="Editorial dashboard proxy — GA4, WordPress and Search Console in one API"
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--serve", action="store_true", help="Start the HTTP API")
    group.add_argument("--action", help="Run a single read action and print its JSON")
    group.add_argument("--batch", help="Comma-separated actions to run concurrently")

    parser.add_argument("--range", dest="range_token", help='Start of the date range, e.g. "30daysAgo"')
    parser.add_argument("--date", help='End of the date range (default "today")')
    parser.add_argument("--post-id", help="Target post for articleContent / aiReview / publishPost")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if args.serve:
        if args.config:
            os.environ["DASHBOARD_CONFIG"] = args.config
        serve(args.host, args.port)
        return 0

    config = load_config(args.config)
    params = {k: v for k, v in {
        "range":  args.range_token,
        "date":   args.date,
        "postId": args.post_id,
    }.items() if v}

    if args.batch:
        params["actions"] = args.batch
        return run_action(config, "batch", params)
    return run_action(config, args.action, params)


if __name__ == "__main__":
    sys.exit(main())
