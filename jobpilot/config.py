"""Load settings.yaml and env configuration into typed run options."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobpilot.browser import DEFAULT_USER_AGENT
from jobpilot.log import get_logger
from jobpilot.models import SearchCriteria
from jobpilot.rate_limiter import RateLimits

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
PROMPT_PATH: Path = CONFIG_DIR / "prompt.txt"
DATA_DIR: Path = ROOT_DIR / "data"
LEDGER_PATH: Path = DATA_DIR / "submitted_jobs.csv"
BLACKLIST_PATH: Path = DATA_DIR / "blacklist.yaml"

DEFAULT_AI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_AI_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class SeekerOptions:
    headless: bool = False
    dry_run: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    retry_times: int = 3
    retry_delay: float = 5.0
    login_timeout: float = 300.0
    login_poll_interval: float = 1.0
    scroll_settle_delay: float = 2.0
    max_scroll_attempts: int = 50
    min_job_interval: float = 3.0
    max_job_interval: float = 10.0
    min_page_interval: float = 3.0
    max_page_interval: float = 10.0
    user_profile: str = ""
    rejection_rules: str = ""
    preference_rules: str = ""


def load_settings(path: Path = SETTINGS_PATH) -> dict[str, Any]:
    if not Path(path).exists():
        log.warning("No settings file at %s — using defaults", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs() -> None:
    for d in (CONFIG_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)


def _known(cls: type, raw: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = set(raw) - names
    if unknown:
        log.warning("Ignoring unknown %s settings: %s", cls.__name__, ", ".join(sorted(unknown)))
    return {k: v for k, v in raw.items() if k in names}


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip() for v in value if str(v).strip())


def build_criteria(settings: dict[str, Any]) -> SearchCriteria:
    raw = dict(settings.get("search") or {})
    keywords = _as_tuple(raw.pop("keywords", None))
    if not keywords:
        raise ValueError("search.keywords must list at least one keyword")
    cities = _as_tuple(raw.pop("cities", None))
    facets = {k: str(v) for k, v in _known(SearchCriteria, raw).items() if v is not None}
    return SearchCriteria(keywords=keywords, cities=cities, **facets)


def build_options(settings: dict[str, Any], **overrides: Any) -> SeekerOptions:
    raw = dict(settings.get("run") or {})
    profile = settings.get("profile") or {}
    raw.setdefault("user_profile", profile.get("summary", ""))
    raw.setdefault("rejection_rules", profile.get("rejection_rules", ""))
    raw.setdefault("preference_rules", profile.get("preference_rules", ""))
    raw.update({k: v for k, v in overrides.items() if v is not None})
    return SeekerOptions(**_known(SeekerOptions, raw))


def build_rate_limits(settings: dict[str, Any], default_max_per_day: int = 300) -> RateLimits:
    raw = dict(settings.get("rate_limits") or {})
    raw.setdefault("max_per_day", default_max_per_day)
    return RateLimits(**_known(RateLimits, raw))


def cooldown_days(settings: dict[str, Any]) -> int:
    return int((settings.get("ledger") or {}).get("cooldown_days", 15))


def ai_settings(settings: dict[str, Any]) -> dict[str, Any]:
    raw = settings.get("ai") or {}
    return {
        "api_key": get_env(raw.get("api_key_env", "AI_API_KEY")),
        "model": get_env("AI_MODEL") or raw.get("model", DEFAULT_AI_MODEL),
        "base_url": get_env("AI_BASE_URL") or raw.get("base_url", DEFAULT_AI_BASE_URL),
        "prompt_path": Path(raw["prompt_path"]) if raw.get("prompt_path") else PROMPT_PATH,
    }
