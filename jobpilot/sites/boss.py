"""BOSS Zhipin (zhipin.com): search, open job tab, greet the recruiter in chat."""
from __future__ import annotations

from typing import Callable
from urllib.parse import urlencode, urljoin

from jobpilot.browser import BrowserActions
from jobpilot.log import get_logger
from jobpilot.models import JobListing, SearchCriteria
from jobpilot.sites.base import JobSite

log = get_logger(__name__)

# Login
LOGIN_SCAN_SWITCH = "text=APP扫码登录"
LOGIN_SUCCESS_HEADER = ".user-nav"
QR_CODE_IMAGE = "img[src^='/wapi/zpweixin/qrcode/getqrcode']"

# Search results
JOB_LIST_CONTAINER = ".job-list-container"
JOB_CARD = "li.job-card-box"
JOB_NAME = "a.job-name"
COMPANY_NAME = "span.boss-name"

# Job detail
JOB_DESCRIPTION = ".job-detail-section:has(h3:text('职位描述')) .job-sec-text"
LIMIT_MESSAGE = "text=已达上限"
HR_ACTIVE_TIME = ".job-boss-info .boss-active-time"
INACTIVE_MARKER = "日前活跃"
CHAT_BUTTON = "a:has-text('立即沟通')"
CHAT_INPUT = ".input-area"
SEND_BUTTON = ".send-message"
VERIFICATION = "text=安全验证"

TYPING_DELAY_MS = (80.0, 200.0)


class BossSite(JobSite):
    name = "boss"
    login_url = "https://www.zhipin.com/web/user/?ka=header-login"
    home_url = "https://www.zhipin.com"
    results_container = JOB_LIST_CONTAINER
    job_card = JOB_CARD
    default_max_per_day = 300

    def prepare_login(self, actions: BrowserActions) -> None:
        """Switch to QR-code login and log the QR image URL for remote scanning."""
        try:
            if not actions.exists(LOGIN_SCAN_SWITCH):
                return
            actions.click(LOGIN_SCAN_SWITCH)
            log.info("Switched to app QR-code login — scan the code with the BOSS app")
            actions.wait_for_selector(QR_CODE_IMAGE)
            src = actions.get_attribute(QR_CODE_IMAGE, "src")
            if src:
                log.info("QR code: %s", urljoin(self.home_url, src))
        except Exception as e:
            log.warning("Could not switch to QR login (%s) — switch manually", str(e)[:100])

    def is_logged_in(self, actions: BrowserActions) -> bool:
        try:
            return actions.exists(LOGIN_SUCCESS_HEADER)
        except Exception:
            return False

    def needs_verification(self, actions: BrowserActions) -> bool:
        try:
            return actions.exists(VERIFICATION)
        except Exception:
            return False

    def build_search_url(self, criteria: SearchCriteria, keyword: str, city: str) -> str:
        params: dict[str, str] = {"query": keyword}
        if city:
            params["city"] = city
        params.update(criteria.facets())
        return f"{self.home_url}/web/geek/job?{urlencode(params)}"

    def read_listing(self, actions: BrowserActions, index: int) -> JobListing:
        card = self.card(index)
        href = actions.get_attribute(f"{card} >> {JOB_NAME}", "href")
        return JobListing(
            company=actions.get_text(f"{card} >> {COMPANY_NAME}"),
            title=actions.get_text(f"{card} >> {JOB_NAME}"),
            detail_url=urljoin(self.home_url, href) if href else None,
            index=index,
        )

    def can_apply(self, detail: BrowserActions) -> tuple[bool, str]:
        if detail.count(LIMIT_MESSAGE) > 0:
            return False, "daily greeting limit reached on site"
        if detail.count(HR_ACTIVE_TIME) > 0 and INACTIVE_MARKER in detail.get_text(HR_ACTIVE_TIME):
            return False, "recruiter inactive"
        return True, ""

    def job_description(self, detail: BrowserActions) -> str:
        return detail.get_text(JOB_DESCRIPTION)

    def submit(self, detail: BrowserActions, message: str, pause: Callable[[], None]) -> None:
        detail.safe_click(CHAT_BUTTON)
        pause()
        detail.safe_type(CHAT_INPUT, message, TYPING_DELAY_MS)
        detail.safe_click(SEND_BUTTON)
