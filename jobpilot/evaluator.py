"""Ask a text-generation service whether a job matches the candidate.

The model must reply with one JSON object:
``{"match_status": bool, "reasoning": str, "greeting_message": str}``.
Anything around the object (markdown fences, commentary) is tolerated.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from jobpilot.log import get_logger
from jobpilot.models import MatchVerdict
from jobpilot.retry import retry

log = get_logger(__name__)

PLACEHOLDERS = ("profile", "rejection_rules", "preference_rules", "job_description")

DEFAULT_PROMPT_TEMPLATE = """You screen job postings for a candidate and write the first chat message to the recruiter.

Candidate profile:
---
{profile}
---

Reject the job if any of these rules apply:
{rejection_rules}

Prefer jobs that satisfy:
{preference_rules}

Job description:
---
{job_description}
---

Reply with exactly one JSON object and nothing else:
{"match_status": true or false, "reasoning": "<one or two sentences>", "greeting_message": "<short, polite first message to the recruiter, empty if no match>"}"""


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str | None: ...


class OpenAIChatGenerator:
    """Chat-completions client for any OpenAI-compatible endpoint (Gemini, Groq, OpenAI)."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str | None = None,
        timeout: float = 30.0,
        max_tokens: int = 600,
    ) -> None:
        from openai import OpenAI

        self.model = model
        self.max_tokens = max_tokens
        self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    @retry(max_attempts=2, base_delay=2.0, retryable=(Exception,))
    def _complete(self, prompt: str) -> str:
        r = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )
        return (r.choices[0].message.content or "").strip()

    def generate(self, prompt: str) -> str | None:
        return self._complete(prompt)


def build_prompt(
    template: str,
    *,
    profile: str,
    rejection_rules: str,
    preference_rules: str,
    job_description: str,
) -> str:
    """Substitute the four named placeholders; other braces are left alone."""
    values = {
        "profile": profile,
        "rejection_rules": rejection_rules,
        "preference_rules": preference_rules,
        "job_description": job_description,
    }
    prompt = template
    for name in PLACEHOLDERS:
        prompt = prompt.replace("{" + name + "}", values[name])
    return prompt


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return False


def parse_verdict(raw: str | None, *, require_greeting: bool = True) -> MatchVerdict:
    """Decode the reply; any failure yields a non-match carrying the reason.

    With *require_greeting*, a match without a greeting message is downgraded
    to a non-match since there would be nothing to send.
    """
    text = raw or ""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return MatchVerdict.rejected("Unparseable AI reply: no JSON object found")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        return MatchVerdict.rejected(f"Unparseable AI reply: {exc}")
    if not isinstance(data, dict):
        return MatchVerdict.rejected("Unparseable AI reply: JSON is not an object")

    match = _as_bool(data.get("match_status"))
    reasoning = str(data.get("reasoning") or "")
    greeting = str(data.get("greeting_message") or "").strip()
    if match and require_greeting and not greeting:
        return MatchVerdict.rejected(f"Match without greeting message: {reasoning}")
    return MatchVerdict(match=match, reasoning=reasoning, greeting_message=greeting)


def load_prompt_template(path: Path | None) -> str:
    if path and Path(path).exists():
        text = Path(path).read_text(encoding="utf-8")
        if text.strip():
            return text
        log.warning("Prompt template %s is empty — using built-in template", path)
    return DEFAULT_PROMPT_TEMPLATE


class MatchEvaluator:
    def __init__(
        self,
        generator: TextGenerator,
        template: str = DEFAULT_PROMPT_TEMPLATE,
        *,
        retry_times: int = 3,
    ) -> None:
        self.generator = generator
        self.template = template
        self.retry_times = retry_times

    def evaluate(
        self,
        job_description: str,
        user_profile: str,
        rejection_rules: str = "",
        preference_rules: str = "",
        *,
        require_greeting: bool = True,
    ) -> MatchVerdict:
        prompt = build_prompt(
            self.template,
            profile=user_profile,
            rejection_rules=rejection_rules,
            preference_rules=preference_rules,
            job_description=job_description,
        )
        attempts = max(1, self.retry_times)
        for attempt in range(1, attempts + 1):
            try:
                reply = self.generator.generate(prompt)
            except Exception as exc:
                log.warning("AI request failed (%d/%d): %s", attempt, attempts, exc)
                continue
            if reply and reply.strip():
                return parse_verdict(reply, require_greeting=require_greeting)
            log.warning("Empty AI reply (%d/%d)", attempt, attempts)
        return MatchVerdict.rejected(f"No AI reply after {attempts} attempts")
