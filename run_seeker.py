#!/usr/bin/env python3
"""Entry point to run the job seeker.

    python run_seeker.py --site boss --dry-run
"""
from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobpilot.config import SETTINGS_PATH
from jobpilot.log import get_logger
from jobpilot.models import RunState

log = get_logger(__name__)


def _check_setup(settings_path: Path) -> bool:
    """Return True if first-run setup is needed."""
    if not settings_path.exists():
        print()
        print(f"  No settings found at {settings_path}.")
        print("  Copy config/settings.example.yaml to config/settings.yaml and edit it.")
        print()
        return True
    return False


def _edit_blacklist(add: list[str], remove: list[str]) -> int:
    from jobpilot.config import BLACKLIST_PATH, LEDGER_PATH
    from jobpilot.ledger import SubmissionLedger

    ledger = SubmissionLedger(LEDGER_PATH, BLACKLIST_PATH)
    for company in add:
        if not ledger.add_to_blacklist(company):
            log.info("Already blacklisted: %s", company)
    for company in remove:
        if not ledger.remove_from_blacklist(company):
            log.info("Not on the blacklist: %s", company)
    log.info("Blacklist: %s", ", ".join(ledger.blacklist()) or "(empty)")
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="JobPilot - AI-screened job applications")
    parser.add_argument("--settings", type=Path, default=SETTINGS_PATH, help="Path to settings.yaml")
    parser.add_argument("--site", default=None, help="Target site (boss, job51)")
    parser.add_argument("--headless", action="store_true", default=None, help="Run the browser headless")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Evaluate jobs but do not send anything")
    parser.add_argument("--login-timeout", type=float, default=None, help="Seconds to wait for login")
    parser.add_argument("--blacklist", action="append", metavar="COMPANY", default=[],
                        help="Add a company to the blacklist and exit (repeatable)")
    parser.add_argument("--unblacklist", action="append", metavar="COMPANY", default=[],
                        help="Remove a company from the blacklist and exit (repeatable)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.blacklist or args.unblacklist:
        return _edit_blacklist(args.blacklist, args.unblacklist)

    if _check_setup(args.settings):
        return 1

    from jobpilot.agent import run

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())

    result = run(
        settings_path=args.settings,
        site_name=args.site,
        stop_event=stop,
        headless=args.headless,
        dry_run=args.dry_run,
        login_timeout=args.login_timeout,
    )
    log.info("Run finished: %s", result.state.value)
    log.info("  Submitted: %d", result.submitted)
    log.info("  Simulated (dry run): %d", result.simulated)
    log.info("  Skipped: %d", result.skipped)
    if result.error:
        log.info("  Error: %s", result.error)
    return 0 if result.state in (RunState.DONE, RunState.CANCELLED) else 2


if __name__ == "__main__":
    sys.exit(main())
