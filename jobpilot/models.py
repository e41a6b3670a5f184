"""Data models for searches, listings, verdicts and run results."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class SearchCriteria:
    keywords: tuple[str, ...]
    cities: tuple[str, ...] = ()
    experience: str = ""
    degree: str = ""
    salary: str = ""
    job_type: str = ""
    scale: str = ""
    stage: str = ""

    def facets(self) -> dict[str, str]:
        """Non-empty optional filters, keyed by facet name."""
        raw = {
            "experience": self.experience,
            "degree": self.degree,
            "salary": self.salary,
            "jobType": self.job_type,
            "scale": self.scale,
            "stage": self.stage,
        }
        return {k: v for k, v in raw.items() if v}


@dataclass
class JobListing:
    company: str
    title: str
    detail_url: str | None = None
    description: str = ""
    index: int = 0


@dataclass(frozen=True)
class MatchVerdict:
    match: bool
    reasoning: str
    greeting_message: str = ""

    @classmethod
    def rejected(cls, reasoning: str) -> MatchVerdict:
        return cls(match=False, reasoning=reasoning, greeting_message="")


@dataclass
class SubmissionRecord:
    company: str
    title: str
    submitted_at: datetime

    @property
    def key(self) -> tuple[str, str]:
        return (self.company.casefold(), self.title.casefold())


class RunState(str, Enum):
    CREATED = "created"
    INITIALIZING = "initializing"
    AWAITING_LOGIN = "awaiting_login"
    SEARCHING = "searching"
    EVALUATING = "evaluating"
    APPLYING = "applying"
    SKIPPING = "skipping"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RunState.DONE, RunState.CANCELLED, RunState.FAILED)


@dataclass
class RunResult:
    state: RunState
    submitted: int = 0
    simulated: int = 0
    skipped: int = 0
    error: str | None = None
    history: list[RunState] = field(default_factory=list)
