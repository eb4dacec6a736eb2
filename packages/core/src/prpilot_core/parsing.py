"""Decoder for the model's nominally-JSON review reply.

The model is told to answer with a bare JSON object, but replies routinely
arrive wrapped in a ```json fence or with a sentence of prose before or after
the object. Decoding therefore walks a fixed fallback chain:

    fenced block  →  first "{" … last "}" span  →  json.loads

and, when every step fails, returns a degraded ReviewResult built from the raw
text instead of raising. Callers can always persist what comes back.
"""

from __future__ import annotations

import json
import logging
import re

from prpilot_core.models import (
    DEFAULT_ISSUE_TYPE,
    DEFAULT_SCORE,
    DEFAULT_SEVERITY,
    ISSUE_TYPES,
    SCORE_MAX,
    SCORE_MIN,
    SEVERITIES,
    Issue,
    ReviewResult,
)

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY_CHARS = 500
MISSING_SUMMARY = "No summary provided"

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def extract_json_text(raw: str) -> str | None:
    """Return the substring most likely to hold the JSON object, or None."""
    candidate = raw
    fence = _FENCE_RE.search(raw)
    if fence:
        candidate = fence.group(1)

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end < start:
        return None
    return candidate[start : end + 1]


def clamp_score(value, default: int = DEFAULT_SCORE) -> int:
    """Coerce a model-supplied score to an int inside [SCORE_MIN, SCORE_MAX]."""
    if isinstance(value, bool):
        return default
    try:
        score = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(SCORE_MIN, min(SCORE_MAX, score))


def _coerce_line(value) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        line = int(value)
    except (TypeError, ValueError):
        return None
    return line if line > 0 else None


def normalize_issue(data: dict) -> Issue:
    severity = str(data.get("severity") or "").lower()
    if severity not in SEVERITIES:
        severity = DEFAULT_SEVERITY
    issue_type = str(data.get("type") or "").lower()
    if issue_type not in ISSUE_TYPES:
        issue_type = DEFAULT_ISSUE_TYPE

    return Issue(
        type=issue_type,
        severity=severity,
        title=str(data.get("title") or "Untitled issue"),
        description=str(data.get("description") or ""),
        file=data.get("file") or None,
        line=_coerce_line(data.get("line")),
        suggestion=str(data.get("suggestion") or ""),
    )


def normalize_rule_violation(data: dict) -> dict:
    severity = str(data.get("severity") or "").lower()
    return {
        "rule": str(data.get("rule") or data.get("rule_name") or "Unnamed rule"),
        "severity": severity if severity in SEVERITIES else DEFAULT_SEVERITY,
        "file": data.get("file") or None,
        "line": _coerce_line(data.get("line")),
        "description": str(data.get("description") or ""),
        "suggestion": str(data.get("suggestion") or ""),
    }


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def degraded_result(raw: str) -> ReviewResult:
    return ReviewResult(summary=raw[:FALLBACK_SUMMARY_CHARS], quality_score=DEFAULT_SCORE, parsed=False)


def parse_review_response(raw: str) -> ReviewResult:
    """Decode a model reply into a schema-valid ReviewResult. Never raises."""
    raw = raw or ""
    text = extract_json_text(raw)
    if text is None:
        logger.warning("No JSON object found in model response: %s", raw[:200])
        return degraded_result(raw)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse model response as JSON (%s): %s", e, raw[:200])
        return degraded_result(raw)

    if not isinstance(data, dict):
        logger.warning("Model response JSON is not an object: %s", raw[:200])
        return degraded_result(raw)

    issues = [normalize_issue(i) for i in _as_list(data.get("issues")) if isinstance(i, dict)]
    suggestions = [s for s in _as_list(data.get("suggestions")) if isinstance(s, dict)]
    highlights = [str(h) for h in _as_list(data.get("highlights")) if isinstance(h, (str, int, float))]
    rule_violations = [
        normalize_rule_violation(v) for v in _as_list(data.get("rule_violations")) if isinstance(v, dict)
    ]

    return ReviewResult(
        summary=str(data.get("summary") or MISSING_SUMMARY),
        quality_score=clamp_score(data.get("quality_score")),
        issues=issues,
        suggestions=suggestions,
        highlights=highlights,
        rule_violations=rule_violations,
    )
