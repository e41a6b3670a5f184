"""
Job seeker agent.

Builds one run from settings: site plug-in → ledger → AI evaluator → rate
limiter → seeker. At most one run per site may be active in the process;
runs for different sites may overlap, sharing one ledger whose writes are
locked in `jobpilot.ledger`.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from jobpilot.config import (
    BLACKLIST_PATH,
    LEDGER_PATH,
    ai_settings,
    build_criteria,
    build_options,
    build_rate_limits,
    cooldown_days,
    ensure_dirs,
    load_settings,
)
from jobpilot.evaluator import MatchEvaluator, OpenAIChatGenerator, load_prompt_template
from jobpilot.ledger import SubmissionLedger
from jobpilot.log import get_logger
from jobpilot.models import RunResult
from jobpilot.rate_limiter import RateLimiter
from jobpilot.seeker import JobSeeker
from jobpilot.sites import get_site

log = get_logger(__name__)

_active_lock = threading.Lock()
_active_sites: set[str] = set()


def build_seeker(
    settings: dict[str, Any],
    *,
    site_name: str | None = None,
    ledger_path: Path = LEDGER_PATH,
    blacklist_path: Path = BLACKLIST_PATH,
    generator=None,
    stop_event: threading.Event | None = None,
    **overrides: Any,
) -> JobSeeker:
    site = get_site(site_name or settings.get("site", "boss"))
    criteria = build_criteria(settings)
    options = build_options(settings, **overrides)
    limits = build_rate_limits(settings, default_max_per_day=site.default_max_per_day)

    ledger = SubmissionLedger(ledger_path, blacklist_path, cooldown_days=cooldown_days(settings))
    ai = ai_settings(settings)
    if generator is None:
        if not ai["api_key"]:
            raise ValueError("AI_API_KEY is not set — add it to .env")
        generator = OpenAIChatGenerator(ai["api_key"], ai["model"], base_url=ai["base_url"])
    evaluator = MatchEvaluator(
        generator,
        load_prompt_template(ai["prompt_path"]),
        retry_times=options.retry_times,
    )

    log.info(
        "Seeker ready: site=%s, %d keyword(s) × %d city(ies), limits %d/h %d/day, dry_run=%s",
        site.name, len(criteria.keywords), len(criteria.cities) or 1,
        limits.max_per_hour, limits.max_per_day, options.dry_run,
    )
    return JobSeeker(
        site, criteria, options, ledger, evaluator, RateLimiter(limits),
        stop_event=stop_event,
    )


def run_seeker(seeker: JobSeeker) -> RunResult:
    """Run *seeker* unless another run for the same site is already active."""
    name = seeker.site.name
    with _active_lock:
        if name in _active_sites:
            raise RuntimeError(f"A run for site '{name}' is already active")
        _active_sites.add(name)
    try:
        return seeker.run()
    finally:
        with _active_lock:
            _active_sites.discard(name)


def is_running(site_name: str) -> bool:
    with _active_lock:
        return site_name in _active_sites


def run(
    *,
    settings_path: Path | None = None,
    site_name: str | None = None,
    stop_event: threading.Event | None = None,
    **overrides: Any,
) -> RunResult:
    ensure_dirs()
    settings = load_settings(settings_path) if settings_path else load_settings()
    seeker = build_seeker(settings, site_name=site_name, stop_event=stop_event, **overrides)
    return run_seeker(seeker)
