"""Normalized review output shared by the parser, formatter and pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

SEVERITIES = ("critical", "high", "medium", "low")
ISSUE_TYPES = ("bug", "security", "performance", "style", "maintainability")

DEFAULT_SEVERITY = "medium"
DEFAULT_ISSUE_TYPE = "maintainability"

SCORE_MIN = 0
SCORE_MAX = 100
DEFAULT_SCORE = 70


@dataclass
class Issue:
    """A single finding reported by the model, with enums already normalized."""

    type: str
    severity: str
    title: str
    description: str = ""
    file: str | None = None
    line: int | None = None
    suggestion: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ReviewResult:
    """Schema-valid review, whether decoded from JSON or degraded from raw text."""

    summary: str
    quality_score: int = DEFAULT_SCORE
    issues: list[Issue] = field(default_factory=list)
    suggestions: list[dict] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)
    # Only populated when custom rules were part of the prompt.
    rule_violations: list[dict] = field(default_factory=list)
    parsed: bool = True  # False when the model reply could not be decoded

    def issue_dicts(self) -> list[dict]:
        return [i.to_dict() for i in self.issues]


@dataclass
class PullRequestInfo:
    """PR metadata available to the prompt and the persisted review."""

    number: int | None = None
    title: str | None = None
    description: str | None = None
    url: str | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    author: str | None = None

    @classmethod
    def from_webhook(cls, pr: dict) -> PullRequestInfo:
        """Build from the ``pull_request`` object of a GitHub webhook payload."""
        return cls(
            number=pr.get("number"),
            title=pr.get("title"),
            description=pr.get("body"),
            url=pr.get("html_url"),
            base_branch=(pr.get("base") or {}).get("ref"),
            head_branch=(pr.get("head") or {}).get("ref"),
            author=(pr.get("user") or {}).get("login"),
        )


@dataclass
class ChangedFile:
    filename: str
    additions: int = 0
    deletions: int = 0
