"""Exception hierarchy for a job seeker run."""
from __future__ import annotations


class JobPilotError(Exception):
    """Base class for all run errors."""


class InitializationFailure(JobPilotError):
    """Browser session could not be created. Aborts the run."""


class LoginTimeout(JobPilotError):
    """The logged-in signal never appeared within the configured timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Login not detected within {timeout:.0f}s")
        self.timeout = timeout


class VerificationRequired(JobPilotError):
    """The site put up a human-verification challenge; the run cannot continue."""


class SearchFailure(JobPilotError):
    """One (city, keyword) search failed. The run moves on to the next pair."""

    def __init__(self, keyword: str, city: str, cause: BaseException) -> None:
        super().__init__(f"Search for '{keyword}' in city '{city}' failed: {cause}")
        self.keyword = keyword
        self.city = city
        self.cause = cause


class ApplyFailure(JobPilotError):
    """Evaluating or applying to one job failed. The job is skipped."""

    def __init__(self, company: str, title: str, cause: BaseException) -> None:
        super().__init__(f"Apply to {title} @ {company} failed: {cause}")
        self.company = company
        self.title = title
        self.cause = cause


class Cancelled(JobPilotError):
    """Stop signal observed at a checkpoint. A normal early exit."""
