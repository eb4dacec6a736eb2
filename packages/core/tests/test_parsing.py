"""Tests for the tolerant model-response decoder."""

import json

import pytest

from prpilot_core.parsing import (
    clamp_score,
    extract_json_text,
    normalize_issue,
    normalize_rule_violation,
    parse_review_response,
)


def _reply(**overrides):
    data = {"summary": "Looks fine.", "quality_score": 90, "issues": [], "suggestions": [], "highlights": []}
    data.update(overrides)
    return json.dumps(data)


class TestExtractJsonText:
    def test_fenced_block_wins_over_surrounding_prose(self):
        raw = 'Here is my review:\n```json\n{"summary": "x"}\n```\nHope this helps {not json}'
        assert extract_json_text(raw) == '{"summary": "x"}'

    def test_fence_without_language_tag(self):
        assert extract_json_text('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_brace_span_without_fence(self):
        assert extract_json_text('Sure! {"a": {"b": 2}} Done.') == '{"a": {"b": 2}}'

    def test_no_object_returns_none(self):
        assert extract_json_text("no json here") is None


class TestParseReviewResponse:
    def test_plain_json(self):
        result = parse_review_response(_reply())
        assert result.parsed is True
        assert result.summary == "Looks fine."
        assert result.quality_score == 90

    def test_fenced_json_with_prose(self):
        raw = f"Here you go:\n```json\n{_reply(summary='Fenced')}\n```\nLet me know!"
        result = parse_review_response(raw)
        assert result.parsed is True
        assert result.summary == "Fenced"

    def test_unparsable_reply_degrades(self):
        raw = "The model refused. " * 50
        result = parse_review_response(raw)
        assert result.parsed is False
        assert result.summary == raw[:500]
        assert result.quality_score == 70
        assert result.issues == []
        assert result.suggestions == []
        assert result.highlights == []
        assert result.rule_violations == []

    def test_broken_json_degrades(self):
        result = parse_review_response('{"summary": "cut off", "issues": [')
        assert result.parsed is False
        assert result.summary.startswith('{"summary"')

    def test_json_array_degrades(self):
        result = parse_review_response("```json\n[1, 2]\n```")
        assert result.parsed is False

    def test_empty_reply(self):
        result = parse_review_response("")
        assert result.parsed is False
        assert result.summary == ""

    def test_none_reply(self):
        assert parse_review_response(None).parsed is False

    def test_missing_summary(self):
        result = parse_review_response(json.dumps({"quality_score": 80}))
        assert result.summary == "No summary provided"

    def test_missing_score_defaults_to_70(self):
        result = parse_review_response(json.dumps({"summary": "s"}))
        assert result.quality_score == 70

    def test_non_list_fields_become_empty(self):
        result = parse_review_response(_reply(issues="none", suggestions={"a": 1}, highlights=None))
        assert result.issues == []
        assert result.suggestions == []
        assert result.highlights == []

    def test_non_object_issues_are_dropped(self):
        result = parse_review_response(_reply(issues=["bad", {"title": "Real", "severity": "low", "type": "style"}]))
        assert len(result.issues) == 1
        assert result.issues[0].title == "Real"

    def test_rule_violations_normalized(self):
        result = parse_review_response(
            _reply(rule_violations=[{"rule": "No Secrets", "severity": "CRITICAL", "line": "9", "file": "cfg.py"}, "x"])
        )
        assert result.rule_violations == [
            {
                "rule": "No Secrets",
                "severity": "critical",
                "file": "cfg.py",
                "line": 9,
                "description": "",
                "suggestion": "",
            }
        ]

    @pytest.mark.parametrize("raw,expected", [(150, 100), (-5, 0), ("85", 85), (72.9, 72)])
    def test_score_is_clamped(self, raw, expected):
        assert parse_review_response(_reply(quality_score=raw)).quality_score == expected


class TestClampScore:
    def test_non_numeric_uses_default(self):
        assert clamp_score("great") == 70

    def test_none_uses_default(self):
        assert clamp_score(None) == 70

    def test_bool_is_not_a_score(self):
        assert clamp_score(True) == 70


class TestNormalizeIssue:
    def test_unknown_enums_are_defaulted(self):
        issue = normalize_issue({"type": "typo", "severity": "blocker", "title": "t"})
        assert issue.severity == "medium"
        assert issue.type == "maintainability"

    def test_enums_are_case_insensitive(self):
        issue = normalize_issue({"type": "Security", "severity": "CRITICAL", "title": "t"})
        assert issue.severity == "critical"
        assert issue.type == "security"

    def test_line_coerced_or_dropped(self):
        assert normalize_issue({"line": "12"}).line == 12
        assert normalize_issue({"line": None}).line is None
        assert normalize_issue({"line": "n/a"}).line is None
        assert normalize_issue({"line": 0}).line is None

    def test_missing_title(self):
        assert normalize_issue({}).title == "Untitled issue"


class TestNormalizeRuleViolation:
    def test_defaults(self):
        violation = normalize_rule_violation({"line": 0, "severity": "urgent"})
        assert violation["rule"] == "Unnamed rule"
        assert violation["severity"] == "medium"
        assert violation["line"] is None
        assert violation["file"] is None

    def test_accepts_rule_name_key(self):
        assert normalize_rule_violation({"rule_name": "Tests"})["rule"] == "Tests"
