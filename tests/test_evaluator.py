from conftest import MATCH_REPLY, NO_MATCH_REPLY, FakeGenerator

from jobpilot.evaluator import (
    DEFAULT_PROMPT_TEMPLATE,
    MatchEvaluator,
    build_prompt,
    load_prompt_template,
    parse_verdict,
)


def test_prompt_substitutes_all_placeholders():
    prompt = build_prompt(
        DEFAULT_PROMPT_TEMPLATE,
        profile="PROFILE-X",
        rejection_rules="REJECT-X",
        preference_rules="PREFER-X",
        job_description="JD-X",
    )
    for marker in ("PROFILE-X", "REJECT-X", "PREFER-X", "JD-X"):
        assert marker in prompt
    assert "{profile}" not in prompt
    # literal JSON braces in the template survive
    assert '{"match_status"' in prompt


def test_parse_tolerates_surrounding_text():
    verdict = parse_verdict(MATCH_REPLY)
    assert verdict.match
    assert verdict.reasoning == "Python backend fits"
    assert verdict.greeting_message == "Hello, I am interested in this role."


def test_parse_non_match():
    verdict = parse_verdict(NO_MATCH_REPLY)
    assert not verdict.match
    assert verdict.reasoning == "Sales role"


def test_parse_without_braces_is_non_match():
    verdict = parse_verdict("I think this job is a great fit!")
    assert not verdict.match
    assert "no JSON object" in verdict.reasoning


def test_parse_broken_json_is_non_match():
    verdict = parse_verdict('{"match_status": true, "reasoning": }')
    assert not verdict.match
    assert verdict.reasoning.startswith("Unparseable AI reply")


def test_parse_string_boolean():
    verdict = parse_verdict('{"match_status": "true", "reasoning": "ok", "greeting_message": "Hi"}')
    assert verdict.match


def test_match_without_greeting_is_downgraded():
    verdict = parse_verdict('{"match_status": true, "reasoning": "ok", "greeting_message": "  "}')
    assert not verdict.match


def test_match_without_greeting_is_kept_when_none_is_needed():
    reply = '{"match_status": true, "reasoning": "ok", "greeting_message": ""}'
    assert parse_verdict(reply, require_greeting=False).match

    verdict = MatchEvaluator(FakeGenerator(default=reply)).evaluate("JD", "profile", require_greeting=False)
    assert verdict.match
    assert verdict.greeting_message == ""


class FlakyGenerator:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = 0

    def generate(self, prompt):
        self.calls += 1
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_empty_replies_are_retried():
    gen = FlakyGenerator([None, "", MATCH_REPLY])
    verdict = MatchEvaluator(gen, retry_times=3).evaluate("JD", "profile")
    assert verdict.match
    assert gen.calls == 3


def test_transport_errors_are_retried():
    gen = FlakyGenerator([RuntimeError("503"), MATCH_REPLY])
    verdict = MatchEvaluator(gen, retry_times=2).evaluate("JD", "profile")
    assert verdict.match


def test_retry_budget_exhausted_gives_non_match():
    gen = FlakyGenerator([None, None])
    verdict = MatchEvaluator(gen, retry_times=2).evaluate("JD", "profile")
    assert not verdict.match
    assert gen.calls == 2


def test_malformed_reply_is_not_retried():
    gen = FakeGenerator(default="no json here")
    verdict = MatchEvaluator(gen, retry_times=3).evaluate("JD", "profile")
    assert not verdict.match
    assert len(gen.prompts) == 1


def test_evaluate_uses_custom_template():
    gen = FakeGenerator()
    evaluator = MatchEvaluator(gen, "P={profile} R={rejection_rules} F={preference_rules} J={job_description}")
    evaluator.evaluate("the jd", "me", "no sales", "remote")
    assert gen.prompts == ["P=me R=no sales F=remote J=the jd"]


def test_load_prompt_template(tmp_path):
    assert load_prompt_template(tmp_path / "missing.txt") == DEFAULT_PROMPT_TEMPLATE
    (tmp_path / "empty.txt").write_text("   ", encoding="utf-8")
    assert load_prompt_template(tmp_path / "empty.txt") == DEFAULT_PROMPT_TEMPLATE
    (tmp_path / "prompt.txt").write_text("Judge {job_description}", encoding="utf-8")
    assert load_prompt_template(tmp_path / "prompt.txt") == "Judge {job_description}"
