#!/usr/bin/env python3
"""
Run the daily tenancy sweep: expiry reminders and finalization of tenancies
whose notice has run out.

Notifications are stored through SessionNotifier.  Without ``--loop`` the
sweep runs once and exits (suitable for cron); with ``--loop`` it stays up
and fires once a day at the configured hour.

Usage:
    python3 scripts/daily_sweep.py
    python3 scripts/daily_sweep.py --loop --interval 300
"""

import argparse
import os
import signal
import sys
import threading

DEFAULT_URL = "sqlite:///tenancy.db"


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the daily tenancy sweep")
    p.add_argument(
        "--db-url",
        default=os.environ.get("DATABASE_URL", DEFAULT_URL),
        help=f"Database URL (default: DATABASE_URL or {DEFAULT_URL!r})",
    )
    p.add_argument("--loop", action="store_true", help="Keep running and sweep once per day")
    p.add_argument("--interval", type=int, default=60, help="Polling interval in seconds (--loop)")
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from tenancy_kernel.db.engine import get_session_factory, init_engine_from_url
    from tenancy_kernel.logging_config import configure_logging
    from tenancy_services import SessionNotifier, TenancyOrchestrator

    configure_logging()
    init_engine_from_url(args.db_url)
    factory = get_session_factory()

    session = factory()
    try:
        orchestrator = TenancyOrchestrator(session, SessionNotifier(factory))
        if not args.loop:
            result = orchestrator.run_daily_sweep()
            print(
                f"reminded={len(result.reminded)} finalized={len(result.finalized)} "
                f"failed={len(result.failed)}"
            )
            return 1 if result.failed else 0

        scheduler = orchestrator.create_scheduler(factory, tick_interval_seconds=args.interval)
    finally:
        session.close()

    done = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: done.set())
    signal.signal(signal.SIGTERM, lambda *_: done.set())
    scheduler.start()
    done.wait()
    scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
