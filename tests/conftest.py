"""
Pytest fixtures and fakes for the JobPilot test suite.

No real browser or network: the site plug-in, browser session and text
generator are replaced by in-memory fakes that record what they were asked.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from jobpilot.config import SeekerOptions
from jobpilot.evaluator import MatchEvaluator
from jobpilot.ledger import SubmissionLedger
from jobpilot.models import JobListing
from jobpilot.rate_limiter import RateLimiter, RateLimits
from jobpilot.sites.base import JobSite

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

MATCH_REPLY = (
    'Sure! ```json\n{"match_status": true, "reasoning": "Python backend fits", '
    '"greeting_message": "Hello, I am interested in this role."}\n```'
)
NO_MATCH_REPLY = '{"match_status": false, "reasoning": "Sales role", "greeting_message": ""}'


class FakeActions:
    """Stands in for BrowserActions on one tab."""

    def __init__(self, card_counts=None, name="main"):
        self.name = name
        self.url = "about:blank"
        self.visited = []
        self.closed = False
        self.scrolls = 0
        self._card_counts = list(card_counts or [])
        self._last_count = 0
        self.navigate_error = None

    def navigate(self, url):
        if self.navigate_error and self.navigate_error[0] in url:
            raise self.navigate_error[1]
        self.url = url
        self.visited.append(url)

    def wait_for_load(self, state="networkidle"):
        pass

    def wait_for_selector(self, selector, timeout_ms=None):
        pass

    def count(self, selector):
        if self._card_counts:
            self._last_count = self._card_counts.pop(0)
        return self._last_count

    def scroll_to_bottom(self):
        self.scrolls += 1

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, main=None, start_error=None):
        self.main = main or FakeActions()
        self.start_error = start_error
        self.started = False
        self.closed = 0
        self.opened = []

    def start(self):
        if self.start_error:
            raise self.start_error
        self.started = True
        return self.main

    def open_page(self):
        tab = FakeActions(name=f"tab{len(self.opened)}")
        self.opened.append(tab)
        return tab

    def close(self):
        self.closed += 1


class FakeSite(JobSite):
    """Serves a fixed list of jobs; each job is a dict with company/title/description."""

    name = "fake"
    login_url = "https://jobs.example.com/login"
    home_url = "https://jobs.example.com"
    results_container = ".results"
    job_card = ".card"

    def __init__(self, jobs, *, logged_in=True, verification=False):
        self.jobs = jobs
        self.logged_in = logged_in
        self.verification = verification
        self.searches = []
        self.read = []
        self.submitted = []

    def is_logged_in(self, actions):
        return self.logged_in

    def needs_verification(self, actions):
        return self.verification

    def build_search_url(self, criteria, keyword, city):
        self.searches.append((city, keyword))
        return f"{self.home_url}/search?q={keyword}&city={city}"

    def read_listing(self, actions, index):
        self.read.append(index)
        job = self.jobs[index]
        return JobListing(
            company=job["company"],
            title=job["title"],
            detail_url=f"{self.home_url}/job/{index}",
            index=index,
        )

    def _job_for(self, detail):
        return self.jobs[int(detail.url.rsplit("/", 1)[1])]

    def can_apply(self, detail):
        return self._job_for(detail).get("can_apply", (True, ""))

    def job_description(self, detail):
        return self._job_for(detail)["description"]

    def submit(self, detail, message, pause):
        job = self._job_for(detail)
        if job.get("submit_error"):
            raise job["submit_error"]
        self.submitted.append((job["company"], message))
        pause()


class FakeGenerator:
    """Replies by looking up a marker in the prompt; records every prompt."""

    def __init__(self, replies=None, default=MATCH_REPLY, on_call=None):
        self.replies = replies or {}
        self.default = default
        self.on_call = on_call
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.on_call:
            self.on_call()
        for marker, reply in self.replies.items():
            if marker in prompt:
                return reply
        return self.default


class Clock:
    def __init__(self, start=NOW):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def ledger(tmp_path, clock):
    return SubmissionLedger(
        tmp_path / "submitted_jobs.csv",
        tmp_path / "blacklist.yaml",
        cooldown_days=15,
        now=clock,
    )


@pytest.fixture
def fast_options():
    return SeekerOptions(
        retry_times=2,
        retry_delay=0,
        login_timeout=0.2,
        login_poll_interval=0.01,
        scroll_settle_delay=0,
        min_job_interval=0,
        max_job_interval=0,
        min_page_interval=0,
        max_page_interval=0,
        user_profile="Python backend developer",
        rejection_rules="no sales",
        preference_rules="product companies",
    )


@pytest.fixture
def open_limits():
    return RateLimiter(RateLimits(min_interval=0, max_per_hour=50, max_per_day=300))


def make_evaluator(generator, retry_times=2):
    return MatchEvaluator(generator, retry_times=retry_times)
