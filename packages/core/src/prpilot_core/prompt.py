"""Prompt assembly for a single pull request review."""

from __future__ import annotations

from typing import Sequence

from prpilot_core.models import ChangedFile, PullRequestInfo
from prpilot_core.utils.diff import MAX_DIFF_CHARS, truncate_diff

SYSTEM_PROMPT = """You are an expert code reviewer with deep knowledge of software engineering best practices, \
security, performance optimization, and clean code principles.

Your role is to analyze pull request diffs and provide comprehensive, actionable feedback.

When reviewing code, you must:
1. Identify potential bugs and logical errors
2. Flag security vulnerabilities (SQL injection, XSS, authentication issues, etc.)
3. Highlight performance issues and optimization opportunities
4. Check for code style and maintainability concerns
5. Suggest improvements for readability and documentation
6. Identify potential edge cases and error handling gaps

Respond ONLY with valid JSON in the following format:
{
  "summary": "Brief overview of the changes and overall assessment",
  "quality_score": <number 0-100>,
  "issues": [
    {
      "type": "bug|security|performance|style|maintainability",
      "severity": "critical|high|medium|low",
      "file": "filename",
      "line": <line number or null>,
      "title": "Short issue title",
      "description": "Detailed explanation of the issue",
      "suggestion": "How to fix it"
    }
  ],
  "suggestions": [
    {
      "type": "improvement|refactor|documentation|testing",
      "file": "filename",
      "title": "Suggestion title",
      "description": "What could be improved and why"
    }
  ],
  "highlights": [
    "List of positive aspects of the code"
  ]
}"""

RULE_VIOLATIONS_INSTRUCTIONS = """Check the diff against each custom rule above. Add a "rule_violations" array to \
the JSON object, empty when no rule is violated:
"rule_violations": [
  {
    "rule": "name of the violated rule",
    "severity": "critical|high|medium|low",
    "file": "filename or null",
    "line": <line number or null>,
    "description": "How the code violates the rule",
    "suggestion": "How to fix it"
  }
]"""


def _field(obj, key: str):
    # Rules arrive either as store records or as plain dicts from the API body.
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def format_rules(rules: Sequence) -> str:
    lines = []
    for rule in rules:
        line = f"- {_field(rule, 'name')}"
        severity = _field(rule, "severity")
        if severity:
            line += f" ({severity})"
        description = _field(rule, "description")
        if description:
            line += f": {description}"
        pattern = _field(rule, "pattern")
        if pattern:
            line += f" [pattern: {pattern}]"
        lines.append(line)
    return "\n".join(lines)


def format_pr_context(pr: PullRequestInfo | None) -> str:
    if pr is None or not pr.title:
        return ""
    return (
        f"PR Title: {pr.title}\n"
        f"PR Description: {pr.description or 'No description provided'}\n"
        f"Base Branch: {pr.base_branch or 'unknown'} <- Head Branch: {pr.head_branch or 'unknown'}\n"
        f"Author: {pr.author or 'unknown'}"
    )


def format_files(files: Sequence[ChangedFile]) -> str:
    return "\n".join(f"- {f.filename} (+{f.additions}/-{f.deletions})" for f in files)


def build_user_prompt(
    diff: str,
    pr: PullRequestInfo | None = None,
    files: Sequence[ChangedFile] = (),
    rules: Sequence = (),
    max_diff_chars: int = MAX_DIFF_CHARS,
) -> str:
    """Merge PR metadata, changed files, enabled rules and the truncated diff."""
    sections = ["Please review the following pull request diff and provide a comprehensive code review."]

    pr_context = format_pr_context(pr)
    if pr_context:
        sections.append(pr_context)
    if files:
        sections.append(f"Files Changed:\n{format_files(files)}")
    if rules:
        sections.append(f"Custom Review Rules to Apply:\n{format_rules(rules)}")
        sections.append(RULE_VIOLATIONS_INSTRUCTIONS)

    sections.append(f"Diff to review:\n```diff\n{truncate_diff(diff, max_diff_chars)}\n```")
    sections.append("Provide your review in the specified JSON format.")
    return "\n\n".join(sections)
