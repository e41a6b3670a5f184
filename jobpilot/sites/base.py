"""Per-site plug-in interface: URLs, selectors and applicability checks."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from jobpilot.browser import BrowserActions
from jobpilot.models import JobListing, SearchCriteria


class JobSite(ABC):
    name: str = ""
    login_url: str = ""
    home_url: str = ""
    results_container: str = ""
    job_card: str = ""
    default_max_per_day: int = 300
    # False when submit() never sends the greeting, so a match needs none.
    sends_message: bool = True

    def card(self, index: int) -> str:
        """Selector for the *index*-th job card on the results page."""
        return f"{self.job_card} >> nth={index}"

    def prepare_login(self, actions: BrowserActions) -> None:
        """Hook run once after the login page has loaded."""

    def needs_verification(self, actions: BrowserActions) -> bool:
        return False

    @abstractmethod
    def is_logged_in(self, actions: BrowserActions) -> bool:
        pass

    @abstractmethod
    def build_search_url(self, criteria: SearchCriteria, keyword: str, city: str) -> str:
        pass

    @abstractmethod
    def read_listing(self, actions: BrowserActions, index: int) -> JobListing:
        pass

    @abstractmethod
    def can_apply(self, detail: BrowserActions) -> tuple[bool, str]:
        pass

    @abstractmethod
    def job_description(self, detail: BrowserActions) -> str:
        pass

    @abstractmethod
    def submit(self, detail: BrowserActions, message: str, pause: Callable[[], None]) -> None:
        pass
