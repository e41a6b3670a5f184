"""
Job seeker run: login → city × keyword search → per-job evaluation → apply.

One run drives one browser session sequentially. The stop event is polled
before every city, keyword and job card, and every timed wait goes through it
so a pending pause ends as soon as ``stop()`` is called.
"""
from __future__ import annotations

import random
import threading
import time

from jobpilot.browser import BrowserActions, BrowserSession
from jobpilot.config import SeekerOptions
from jobpilot.errors import (
    ApplyFailure,
    Cancelled,
    InitializationFailure,
    JobPilotError,
    LoginTimeout,
    SearchFailure,
    VerificationRequired,
)
from jobpilot.evaluator import MatchEvaluator
from jobpilot.ledger import SubmissionLedger
from jobpilot.log import get_logger
from jobpilot.models import JobListing, RunResult, RunState, SearchCriteria
from jobpilot.rate_limiter import RateLimiter
from jobpilot.sites.base import JobSite

log = get_logger(__name__)

# Consecutive scrolls without new cards before the list counts as exhausted.
SCROLL_STRIKES = 2


class JobSeeker:
    def __init__(
        self,
        site: JobSite,
        criteria: SearchCriteria,
        options: SeekerOptions,
        ledger: SubmissionLedger,
        evaluator: MatchEvaluator,
        rate_limiter: RateLimiter,
        *,
        session: BrowserSession | None = None,
        stop_event: threading.Event | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.site = site
        self.criteria = criteria
        self.options = options
        self.ledger = ledger
        self.evaluator = evaluator
        self.rate_limiter = rate_limiter
        self.session = session or BrowserSession(
            headless=options.headless,
            user_agent=options.user_agent,
            retry_times=options.retry_times,
            retry_delay=options.retry_delay,
        )
        self._stop = stop_event or threading.Event()
        self._rng = rng or random.Random()
        self.page: BrowserActions | None = None
        self.state = RunState.CREATED
        self.history: list[RunState] = [RunState.CREATED]
        self.submitted_count = 0
        self.simulated_count = 0
        self.skipped_count = 0

    # ------------------------------------------------------------------
    # control
    # ------------------------------------------------------------------

    def stop(self) -> None:
        if not self._stop.is_set():
            log.info("Stop requested — finishing current action")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _transition(self, state: RunState) -> None:
        if state is not self.state:
            log.debug("State %s → %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _check_cancelled(self) -> None:
        if self._stop.is_set():
            raise Cancelled("Stop signal received")

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._stop.wait(seconds)

    def _random_pause(self, low: float, high: float) -> None:
        low, high = min(low, high), max(low, high)
        self._pause(self._rng.uniform(low, high))

    def _page_pause(self) -> None:
        self._random_pause(self.options.min_page_interval, self.options.max_page_interval)

    def _check_verification(self, actions: BrowserActions) -> None:
        if self.site.needs_verification(actions):
            raise VerificationRequired(f"{self.site.name}: human verification challenge at {actions.url}")

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------

    def run(self) -> RunResult:
        error: str | None = None
        try:
            self._check_cancelled()
            self._initialize()
            self._await_login()
            self._search_all()
            self._transition(RunState.DONE)
            log.info(
                "Run complete — submitted=%d, simulated=%d, skipped=%d",
                self.submitted_count, self.simulated_count, self.skipped_count,
            )
        except Cancelled:
            self._transition(RunState.CANCELLED)
            log.info("Run cancelled — submitted=%d so far", self.submitted_count)
        except JobPilotError as e:
            self._transition(RunState.FAILED)
            error = str(e)
            log.error("Run failed: %s", error)
        except Exception as e:
            self._transition(RunState.FAILED)
            error = str(e)[:300]
            log.exception("Run failed unexpectedly: %s", error)
        finally:
            self.shutdown()
        return RunResult(
            state=self.state,
            submitted=self.submitted_count,
            simulated=self.simulated_count,
            skipped=self.skipped_count,
            error=error,
            history=list(self.history),
        )

    def _initialize(self) -> None:
        self._transition(RunState.INITIALIZING)
        try:
            self.page = self.session.start()
        except Exception as e:
            raise InitializationFailure(f"Could not start browser: {e}") from e

    def _await_login(self) -> None:
        self._transition(RunState.AWAITING_LOGIN)
        page = self.page
        page.navigate(self.site.login_url)
        log.info("Please complete login in the opened browser (timeout %.0fs)", self.options.login_timeout)
        self.site.prepare_login(page)

        deadline = time.monotonic() + self.options.login_timeout
        while not self.site.is_logged_in(page):
            self._check_cancelled()
            if time.monotonic() >= deadline:
                raise LoginTimeout(self.options.login_timeout)
            self._pause(self.options.login_poll_interval)
        log.info("Login detected — starting search")

    def _search_all(self) -> None:
        self._transition(RunState.SEARCHING)
        cities = self.criteria.cities or ("",)
        for city in cities:
            self._check_cancelled()
            log.info("City: %s", city or "(any)")
            for keyword in self.criteria.keywords:
                self._check_cancelled()
                try:
                    self._search_pair(keyword, city)
                except (Cancelled, VerificationRequired):
                    raise
                except Exception as e:
                    failure = SearchFailure(keyword, city, e)
                    log.error("%s", failure)
                    self._page_pause()

    def _search_pair(self, keyword: str, city: str) -> None:
        self._transition(RunState.SEARCHING)
        page = self.page
        url = self.site.build_search_url(self.criteria, keyword, city)
        log.info("Searching '%s' in %s → %s", keyword, city or "(any)", url)
        page.navigate(url)
        self._check_verification(page)
        page.wait_for_selector(self.site.results_container)

        total = self._load_all_cards()
        log.info("Found %d job(s) for '%s' in %s", total, keyword, city or "(any)")

        for index in range(total):
            self._check_cancelled()
            if not self.rate_limiter.check_rate_limit():
                counters = self.rate_limiter.snapshot()
                log.warning(
                    "Submission limit reached (hourly=%d, daily=%d) — abandoning %d remaining job(s) on this page",
                    counters["hourly_count"], counters["daily_count"], total - index,
                )
                return
            self._process_card(index)
            self._random_pause(self.options.min_job_interval, self.options.max_job_interval)

    def _load_all_cards(self) -> int:
        """Scroll until the card count stops growing; return the final count."""
        page = self.page
        best = page.count(self.site.job_card)
        strikes = 0
        scrolls = 0
        while strikes < SCROLL_STRIKES:
            if scrolls >= self.options.max_scroll_attempts:
                log.warning("Stopped scrolling after %d attempts (%d cards)", scrolls, best)
                break
            page.scroll_to_bottom()
            scrolls += 1
            self._pause(self.options.scroll_settle_delay)
            self._check_cancelled()
            current = page.count(self.site.job_card)
            if current > best:
                best = current
                strikes = 0
            else:
                strikes += 1
        return best

    # ------------------------------------------------------------------
    # per job
    # ------------------------------------------------------------------

    def _skip(self, listing: JobListing, reason: str) -> None:
        self._transition(RunState.SKIPPING)
        self.skipped_count += 1
        log.info("Skip %s @ %s: %s", listing.title, listing.company, reason)

    def _process_card(self, index: int) -> None:
        self._transition(RunState.EVALUATING)
        listing = JobListing(company="?", title="?", index=index)
        try:
            listing = self.site.read_listing(self.page, index)
            self._evaluate_and_apply(listing)
        except (Cancelled, VerificationRequired):
            raise
        except Exception as e:
            failure = ApplyFailure(listing.company, listing.title, e)
            log.error("%s", failure)
            self._transition(RunState.SKIPPING)
            self.skipped_count += 1

    def _evaluate_and_apply(self, listing: JobListing) -> None:
        if not self.ledger.can_proceed(listing.company, listing.title):
            self._skip(listing, f"blacklisted or applied within {self.ledger.cooldown_days} days")
            return
        if not listing.detail_url:
            self._skip(listing, "no detail link")
            return

        detail = self.session.open_page()
        try:
            detail.navigate(listing.detail_url)
            detail.wait_for_load()
            self._check_verification(detail)

            ok, reason = self.site.can_apply(detail)
            if not ok:
                self._skip(listing, reason)
                return

            listing.description = self.site.job_description(detail)
            log.info("Evaluating %s @ %s (%d chars of JD)",
                     listing.title, listing.company, len(listing.description))
            verdict = self.evaluator.evaluate(
                listing.description,
                self.options.user_profile,
                self.options.rejection_rules,
                self.options.preference_rules,
                require_greeting=self.site.sends_message,
            )
            if not verdict.match:
                self._skip(listing, f"no match — {verdict.reasoning}")
                return

            self._transition(RunState.APPLYING)
            if self.options.dry_run:
                self.simulated_count += 1
                self.rate_limiter.record_submission()
                log.info("[dry run] Would apply to %s @ %s with: %s",
                         listing.title, listing.company, verdict.greeting_message)
                return

            self.site.submit(detail, verdict.greeting_message, self._page_pause)
            self.submitted_count += 1
            self.ledger.record_submission(listing.company, listing.title)
            self.rate_limiter.record_submission()
            log.info("Applied: %s @ %s (total %d)", listing.title, listing.company, self.submitted_count)
            self._page_pause()
        finally:
            try:
                detail.close()
            except Exception as e:
                log.warning("Could not close job tab: %s", str(e)[:150])

    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Release the browser. Never raises."""
        try:
            self.session.close()
        except Exception as e:
            log.warning("Error during shutdown: %s", str(e)[:150])
        self.page = None
        log.info("Browser closed")
