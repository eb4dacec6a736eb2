"""Review metrics, disposition policy and the Markdown body posted back to GitHub."""

from __future__ import annotations

from typing import Iterable

from prpilot_core.models import ISSUE_TYPES, SEVERITIES, Issue, ReviewResult

APPROVE_THRESHOLD = 80

_SEVERITY_EMOJI = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🟢"}


def _severity_of(issue) -> str:
    return issue.severity if isinstance(issue, Issue) else (issue or {}).get("severity", "")


def calculate_metrics(result: ReviewResult) -> dict:
    """Derive the counts stored alongside a completed review."""
    by_severity = {s: 0 for s in SEVERITIES}
    by_type = {t: 0 for t in ISSUE_TYPES}
    for issue in result.issues:
        if issue.severity in by_severity:
            by_severity[issue.severity] += 1
        if issue.type in by_type:
            by_type[issue.type] += 1

    return {
        "totalIssues": len(result.issues),
        "bySeverity": by_severity,
        "byType": by_type,
        "suggestionsCount": len(result.suggestions),
        "highlightsCount": len(result.highlights),
        "ruleViolationsCount": len(result.rule_violations),
        "needsAttention": by_severity["critical"] > 0 or by_severity["high"] > 0,
    }


def determine_event(issues: Iterable, quality_score: int) -> str:
    """Choose the GitHub review event from issue severities and the score.

    Accepts Issue objects or plain dicts with a "severity" key.
    """
    severities = {_severity_of(i) for i in issues}
    if "critical" in severities:
        return "REQUEST_CHANGES"
    if "high" in severities:
        return "COMMENT"
    if quality_score >= APPROVE_THRESHOLD:
        return "APPROVE"
    return "COMMENT"


def format_review_comment(result: ReviewResult) -> str:
    """Build the review body posted as the GitHub review description."""
    lines = ["## PRPilot AI Code Review\n"]
    lines.append(f"**Quality Score:** {result.quality_score}/100\n")
    lines.append(f"### Summary\n{result.summary}\n")

    if result.issues:
        lines.append(f"### Issues Found ({len(result.issues)})\n")
        for severity in SEVERITIES:
            group = [i for i in result.issues if i.severity == severity]
            if not group:
                continue
            lines.append(f"#### {_SEVERITY_EMOJI[severity]} {severity.capitalize()} ({len(group)})\n")
            for issue in group:
                entry = f"- **{issue.title}** ({issue.type})"
                if issue.file:
                    entry += f" in `{issue.file}`"
                if issue.line:
                    entry += f" at line {issue.line}"
                if issue.description:
                    entry += f"\n  {issue.description}"
                if issue.suggestion:
                    entry += f"\n  > Suggestion: {issue.suggestion}"
                lines.append(entry + "\n")

    if result.suggestions:
        lines.append("### Suggestions for Improvement\n")
        for suggestion in result.suggestions:
            entry = f"- **{suggestion.get('title', 'Suggestion')}**"
            if suggestion.get("type"):
                entry += f" ({suggestion['type']})"
            if suggestion.get("file"):
                entry += f" in `{suggestion['file']}`"
            if suggestion.get("description"):
                entry += f"\n  {suggestion['description']}"
            lines.append(entry + "\n")

    if result.rule_violations:
        lines.append(f"### Custom Rule Violations ({len(result.rule_violations)})\n")
        for violation in result.rule_violations:
            entry = f"- **{violation['rule']}** ({violation['severity']})"
            if violation.get("file"):
                entry += f" in `{violation['file']}`"
            if violation.get("line"):
                entry += f" at line {violation['line']}"
            if violation.get("description"):
                entry += f"\n  {violation['description']}"
            if violation.get("suggestion"):
                entry += f"\n  > Suggestion: {violation['suggestion']}"
            lines.append(entry + "\n")

    if result.highlights:
        lines.append("### Highlights\n")
        lines.extend(f"- {h}" for h in result.highlights)

    lines.append("\n---\n*Automated review by PRPilot AI*")
    return "\n".join(lines)
