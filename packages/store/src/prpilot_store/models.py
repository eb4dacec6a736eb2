"""Persisted record models.

Decoupled from prpilot_core so the store layer can be used independently:
issue, suggestion and metrics payloads are stored as plain dicts/lists and
never as core dataclasses.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

REVIEW_STATUSES = ("pending", "analyzing", "completed", "failed")
TERMINAL_STATUSES = ("completed", "failed")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class RepositoryRecord:
    """A source repository registered for automated PR reviews."""

    user_id: str
    owner: str
    name: str
    webhook_secret: str | None = None
    github_token: str | None = None
    provider: str = "github"
    auto_review: bool = True
    review_on_push: bool = False
    default_branch: str = "main"
    status: str = "active"  # "active" | "inactive"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class ReviewRecord:
    """One review attempt for a (repository, PR number).

    Status moves (none) → analyzing → completed|failed and never back.
    """

    user_id: str
    repo_id: str | None = None
    pr_number: int | None = None
    pr_title: str | None = None
    pr_url: str | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    pr_author: str | None = None
    status: str = "analyzing"
    triggered_by: str = "api"  # "webhook" | "api" | "cli"
    webhook_delivery_id: str | None = None
    quality_score: int | None = None
    summary: str | None = None
    issues: list[dict] = field(default_factory=list)
    suggestions: list[dict] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)
    metrics: dict | None = None
    files_reviewed: list[str] = field(default_factory=list)
    rule_violations: list[dict] = field(default_factory=list)
    error_message: str | None = None
    user_notes: str | None = None
    resolved: bool = False
    resolved_at: str | None = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class RuleRecord:
    """A user-defined review rule, optionally scoped to one repository."""

    user_id: str
    name: str
    description: str
    category: str = "general"
    severity: str = "medium"
    pattern: str | None = None
    template_id: str | None = None
    enabled: bool = True
    repo_id: str | None = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
