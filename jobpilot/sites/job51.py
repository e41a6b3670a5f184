"""51job (51job.com): search, open job tab, press apply. The site has no greeting chat."""
from __future__ import annotations

from typing import Callable
from urllib.parse import urlencode

from jobpilot.browser import BrowserActions
from jobpilot.log import get_logger
from jobpilot.models import JobListing, SearchCriteria
from jobpilot.sites.base import JobSite

log = get_logger(__name__)

LOGIN_SUCCESS_INDICATOR = "a.uname:not(:text('登录'))"
JOB_LIST_CONTAINER = "div.joblist"
JOB_CARD = "div.joblist-item"
JOB_TITLE = ".jname"
COMPANY_NAME = ".cname"
JOB_LINK = "a[href*='jobs.51job.com']"
JOB_DESCRIPTION = "div.job_msg"
ALREADY_APPLIED = "text=已申请"
EXTERNAL_APPLY = "text=需要到企业招聘平台单独申请"
APPLY_BUTTON = "a:has-text('申请职位')"
SUCCESS_POPUP_CLOSE = "div.successContent i.van-icon-cross"
VERIFICATION_TITLE = "p.waf-nc-title:text('安全验证')"


class Job51Site(JobSite):
    name = "job51"
    login_url = "https://login.51job.com/login.php"
    home_url = "https://www.51job.com"
    search_url = "https://we.51job.com/pc/search"
    results_container = JOB_LIST_CONTAINER
    job_card = JOB_CARD
    default_max_per_day = 100
    sends_message = False

    def is_logged_in(self, actions: BrowserActions) -> bool:
        try:
            return actions.exists(LOGIN_SUCCESS_INDICATOR)
        except Exception:
            return False

    def needs_verification(self, actions: BrowserActions) -> bool:
        return actions.is_visible(VERIFICATION_TITLE)

    def build_search_url(self, criteria: SearchCriteria, keyword: str, city: str) -> str:
        params = {"keyword": keyword}
        if city:
            params["jobArea"] = city
        if criteria.facets():
            log.debug("51job search ignores facets: %s", ", ".join(criteria.facets()))
        return f"{self.search_url}?{urlencode(params)}"

    def read_listing(self, actions: BrowserActions, index: int) -> JobListing:
        card = self.card(index)
        return JobListing(
            company=actions.get_text(f"{card} >> {COMPANY_NAME}"),
            title=actions.get_text(f"{card} >> {JOB_TITLE}"),
            detail_url=actions.get_attribute(f"{card} >> {JOB_LINK}", "href"),
            index=index,
        )

    def can_apply(self, detail: BrowserActions) -> tuple[bool, str]:
        if detail.exists(ALREADY_APPLIED):
            return False, "already applied on site"
        if detail.exists(EXTERNAL_APPLY):
            return False, "external application required"
        if not detail.exists(APPLY_BUTTON):
            return False, "no apply button"
        return True, ""

    def job_description(self, detail: BrowserActions) -> str:
        return detail.get_text(JOB_DESCRIPTION)

    def submit(self, detail: BrowserActions, message: str, pause: Callable[[], None]) -> None:
        detail.safe_click(APPLY_BUTTON)
        pause()
        if detail.is_visible(SUCCESS_POPUP_CLOSE):
            detail.click(SUCCESS_POPUP_CLOSE)
        log.debug("51job has no recruiter chat; greeting not sent (%d chars)", len(message))
