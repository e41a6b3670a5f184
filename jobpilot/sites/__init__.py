from .base import JobSite
from .boss import BossSite
from .job51 import Job51Site

from jobpilot.log import get_logger

log = get_logger(__name__)

__all__ = ["JobSite", "BossSite", "Job51Site", "SITES", "get_site"]

SITES: dict[str, type[JobSite]] = {
    BossSite.name: BossSite,
    Job51Site.name: Job51Site,
}


def get_site(name: str) -> JobSite:
    try:
        site_cls = SITES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown site {name!r}; choose one of {', '.join(SITES)}") from None
    log.info("Registered site: %s", site_cls.name)
    return site_cls()
