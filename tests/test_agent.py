import threading

import pytest
from conftest import FakeActions, FakeGenerator, FakeSession, FakeSite, make_evaluator

from jobpilot import agent
from jobpilot.ledger import SubmissionLedger
from jobpilot.models import RunResult, RunState, SearchCriteria
from jobpilot.seeker import JobSeeker
from jobpilot.sites import Job51Site


class _Site:
    name = "boss"


class _NestedSeeker:
    """Tries to start a second run for the same site while the first is active."""

    site = _Site()

    def __init__(self):
        self.nested_error = None

    def run(self):
        assert agent.is_running("boss")
        try:
            agent.run_seeker(_NestedSeeker())
        except RuntimeError as e:
            self.nested_error = e
        return RunResult(state=RunState.DONE)


def test_one_active_run_per_site():
    seeker = _NestedSeeker()
    result = agent.run_seeker(seeker)
    assert result.state is RunState.DONE
    assert "already active" in str(seeker.nested_error)
    assert not agent.is_running("boss")


def test_build_seeker_wires_site_defaults(tmp_path):
    settings = {
        "site": "job51",
        "search": {"keywords": ["java"]},
        "run": {"retry_times": 4},
        "ledger": {"cooldown_days": 7},
    }
    stop = threading.Event()
    seeker = agent.build_seeker(
        settings,
        ledger_path=tmp_path / "ledger.csv",
        blacklist_path=tmp_path / "blacklist.yaml",
        generator=FakeGenerator(),
        stop_event=stop,
        dry_run=True,
    )
    assert isinstance(seeker.site, Job51Site)
    assert seeker.rate_limiter.limits.max_per_day == 100
    assert seeker.ledger.cooldown_days == 7
    assert seeker.evaluator.retry_times == 4
    assert seeker.options.dry_run is True
    seeker.stop()
    assert stop.is_set()


def test_build_seeker_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.delenv("AI_API_KEY", raising=False)
    with pytest.raises(ValueError, match="AI_API_KEY"):
        agent.build_seeker(
            {"search": {"keywords": ["java"]}},
            ledger_path=tmp_path / "ledger.csv",
            blacklist_path=tmp_path / "blacklist.yaml",
        )


def _site_run(site_name, company, ledger, options, limiter):
    site = FakeSite([{"company": company, "title": "Backend Engineer", "description": "JD"}])
    site.name = site_name
    return JobSeeker(
        site,
        SearchCriteria(keywords=("python",)),
        options,
        ledger,
        make_evaluator(FakeGenerator()),
        limiter,
        session=FakeSession(FakeActions(card_counts=[1])),
    )


def test_runs_for_different_sites_share_one_ledger(tmp_path, clock, fast_options, open_limits):
    paths = (tmp_path / "submitted_jobs.csv", tmp_path / "blacklist.yaml")
    boss_ledger = SubmissionLedger(*paths, now=clock)
    job51_ledger = SubmissionLedger(*paths, now=clock)

    first = agent.run_seeker(_site_run("boss", "AlphaCo", boss_ledger, fast_options, open_limits))
    second = agent.run_seeker(_site_run("job51", "BetaCo", job51_ledger, fast_options, open_limits))

    assert first.submitted == second.submitted == 1
    fresh = SubmissionLedger(*paths, now=clock)
    assert {r.company for r in fresh.records()} == {"AlphaCo", "BetaCo"}
    assert not fresh.can_proceed("AlphaCo", "Backend Engineer")
