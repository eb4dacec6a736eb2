"""Record → JSON conversion for API responses (camelCase keys)."""

from __future__ import annotations

from prpilot_store.models import RepositoryRecord, ReviewRecord, RuleRecord


def review_to_dict(review: ReviewRecord, repository: RepositoryRecord | None = None) -> dict:
    data = {
        "id": review.id,
        "repoId": review.repo_id,
        "status": review.status,
        "prNumber": review.pr_number,
        "prTitle": review.pr_title,
        "prUrl": review.pr_url,
        "baseBranch": review.base_branch,
        "headBranch": review.head_branch,
        "prAuthor": review.pr_author,
        "triggeredBy": review.triggered_by,
        "summary": review.summary,
        "qualityScore": review.quality_score,
        "issues": review.issues,
        "suggestions": review.suggestions,
        "highlights": review.highlights,
        "ruleViolations": review.rule_violations,
        "metrics": review.metrics,
        "filesReviewed": review.files_reviewed,
        "errorMessage": review.error_message,
        "userNotes": review.user_notes,
        "resolved": review.resolved,
        "resolvedAt": review.resolved_at,
        "createdAt": review.created_at,
        "updatedAt": review.updated_at,
    }
    if repository is not None:
        data["repository"] = {
            "fullName": repository.full_name,
            "owner": repository.owner,
            "name": repository.name,
        }
    return data


def repository_to_dict(repo: RepositoryRecord, include_secret: bool = False) -> dict:
    # The stored access token is never echoed back.
    data = {
        "id": repo.id,
        "repoOwner": repo.owner,
        "repoName": repo.name,
        "repoFullName": repo.full_name,
        "provider": repo.provider,
        "hasGithubToken": bool(repo.github_token),
        "autoReview": repo.auto_review,
        "reviewOnPush": repo.review_on_push,
        "defaultBranch": repo.default_branch,
        "status": repo.status,
        "createdAt": repo.created_at,
        "updatedAt": repo.updated_at,
    }
    if include_secret:
        data["webhookSecret"] = repo.webhook_secret
    return data


def rule_to_dict(rule: RuleRecord) -> dict:
    return {
        "id": rule.id,
        "repoId": rule.repo_id,
        "name": rule.name,
        "description": rule.description,
        "category": rule.category,
        "severity": rule.severity,
        "pattern": rule.pattern,
        "templateId": rule.template_id,
        "enabled": rule.enabled,
        "createdAt": rule.created_at,
        "updatedAt": rule.updated_at,
    }
