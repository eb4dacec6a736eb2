"""Core PR review orchestration.

One review runs strictly in order:

    start_review (analyzing) → fetch diff → load rules → model call
        → complete_review | fail_review → post review back (best effort)

The store, the reviewer and the poster are passed in per call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from prpilot_core.errors import ReviewerNotConfiguredError
from prpilot_core.formatting import calculate_metrics, determine_event, format_review_comment
from prpilot_core.gh.pull_request import fetch_diff, post_review
from prpilot_core.models import ChangedFile, PullRequestInfo, ReviewResult
from prpilot_core.providers.anthropic import AnthropicReviewer
from prpilot_core.providers.base import BaseReviewer
from prpilot_core.providers.groq import GroqReviewer
from prpilot_core.providers.openai import OpenAIReviewer
from prpilot_core.utils.diff import MAX_DIFF_CHARS, extract_files_from_diff
from prpilot_store.models import ReviewRecord, utc_now

if TYPE_CHECKING:
    from prpilot_store.base import BaseStore
    from prpilot_store.models import RepositoryRecord

logger = logging.getLogger(__name__)

_PROVIDERS = {
    "groq": (GroqReviewer, "groq_api_key"),
    "openai": (OpenAIReviewer, "openai_api_key"),
    "anthropic": (AnthropicReviewer, "anthropic_api_key"),
}

Poster = Callable[[str, str, int, str, str], None]


def build_reviewer(config: dict) -> BaseReviewer | None:
    """Construct the configured model client, or None when its API key is missing."""
    model = config["model"]
    if model not in _PROVIDERS:
        raise ValueError(f"Unknown model provider: {model!r}. Choose one of {', '.join(_PROVIDERS)}.")
    reviewer_cls, key_name = _PROVIDERS[model]
    api_key = config.get(key_name)
    if not api_key:
        logger.warning("No API key configured for %s; reviews are disabled", model)
        return None
    return reviewer_cls(api_key=api_key)


@dataclass
class ReviewRequest:
    """Everything needed to review one diff.

    Either ``diff`` is supplied directly (API and CLI), or ``diff_url`` is
    fetched using the repository's stored token (webhook).
    """

    user_id: str
    diff: str | None = None
    diff_url: str | None = None
    repository: RepositoryRecord | None = None
    repo_id: str | None = None
    pr: PullRequestInfo = field(default_factory=PullRequestInfo)
    files: list[ChangedFile] = field(default_factory=list)
    # Caller-supplied rules replace the stored ones when given.
    custom_rules: list | None = None
    triggered_by: str = "api"
    delivery_id: str | None = None

    @property
    def target_repo_id(self) -> str | None:
        if self.repository is not None:
            return self.repository.id
        return self.repo_id


@dataclass
class ReviewOutcome:
    review_id: str | None
    created_at: str
    result: ReviewResult | None = None
    metrics: dict = field(default_factory=dict)
    event: str | None = None
    duplicate: bool = False
    saved: bool = True
    posted: bool = False
    warning: str | None = None


def _load_rules(store: BaseStore, request: ReviewRequest) -> list:
    if request.custom_rules is not None:
        return list(request.custom_rules)
    owner_id = request.repository.user_id if request.repository is not None else request.user_id
    return store.list_active_rules(owner_id, request.target_repo_id)


def _start(store: BaseStore, request: ReviewRequest, reuse_in_progress: bool):
    pr = request.pr
    record = ReviewRecord(
        user_id=request.repository.user_id if request.repository is not None else request.user_id,
        repo_id=request.target_repo_id,
        pr_number=pr.number,
        pr_title=pr.title,
        pr_url=pr.url,
        base_branch=pr.base_branch,
        head_branch=pr.head_branch,
        pr_author=pr.author,
        triggered_by=request.triggered_by,
        webhook_delivery_id=request.delivery_id,
    )
    # Reviews without a PR number can never collide, so they always insert.
    try:
        stored, created = store.start_review(record)
    except Exception as e:
        logger.error("Could not create review record, reviewing without one: %s", e)
        return None, True
    if not created and not reuse_in_progress:
        return stored, False
    if not created:
        logger.info("Reusing in-progress review %s", stored.id)
    return stored, True


def run_review(
    request: ReviewRequest,
    store: BaseStore,
    reviewer: BaseReviewer | None,
    poster: Poster | None = post_review,
    max_diff_chars: int = MAX_DIFF_CHARS,
    reuse_in_progress: bool = False,
    session=None,
) -> ReviewOutcome:
    """Run the review pipeline for one request and return its outcome.

    Raises ReviewerNotConfiguredError before touching the store when no model
    client is available. DiffFetchError and model exceptions are re-raised
    after the review record has been marked failed.

    When a review for the same (repository, PR) is already analyzing, the
    webhook path returns a ``duplicate`` outcome without calling the model;
    with ``reuse_in_progress`` (direct API) the existing record is reused and
    the completion that lands last is the one stored.
    """
    if reviewer is None:
        raise ReviewerNotConfiguredError("AI service not configured")

    record, proceed = _start(store, request, reuse_in_progress)
    if not proceed:
        logger.info("Review %s already in progress for PR #%s", record.id, record.pr_number)
        return ReviewOutcome(review_id=record.id, created_at=record.created_at, duplicate=True)

    review_id = record.id if record is not None else None
    created_at = record.created_at if record is not None else utc_now()

    try:
        diff = request.diff
        if diff is None:
            token = request.repository.github_token if request.repository is not None else None
            diff = fetch_diff(request.diff_url, token=token, session=session)
        rules = _load_rules(store, request)
        result = reviewer.review(
            diff,
            pr=request.pr,
            files=request.files,
            rules=rules,
            max_diff_chars=max_diff_chars,
        )
    except Exception as e:
        logger.error("Review %s failed: %s", review_id, e)
        if review_id is not None:
            _mark_failed(store, review_id, str(e))
        raise

    if not result.parsed:
        logger.warning("Review %s stored with degraded output (model reply was not valid JSON)", review_id)

    metrics = calculate_metrics(result)
    event = determine_event(result.issues, result.quality_score)
    outcome = ReviewOutcome(
        review_id=review_id,
        created_at=created_at,
        result=result,
        metrics=metrics,
        event=event,
        saved=review_id is not None,
    )

    if review_id is not None:
        try:
            outcome.saved = store.complete_review(
                review_id,
                summary=result.summary,
                quality_score=result.quality_score,
                issues=result.issue_dicts(),
                suggestions=result.suggestions,
                highlights=result.highlights,
                metrics=metrics,
                files_reviewed=[f.filename for f in request.files] or extract_files_from_diff(diff),
                rule_violations=result.rule_violations,
                overwrite=reuse_in_progress,
            )
        except Exception as e:
            logger.error("Could not save review %s: %s", review_id, e)
            outcome.saved = False
        else:
            if not outcome.saved:
                logger.warning("Review %s was no longer writable; result not saved", review_id)
    if not outcome.saved:
        outcome.warning = "Review generated but could not be saved"

    repo = request.repository
    if poster is not None and repo is not None and repo.github_token and request.pr.number is not None:
        outcome.posted = _post(poster, repo, request.pr.number, result, event)

    return outcome


def _mark_failed(store: BaseStore, review_id: str, error_message: str) -> None:
    """Record a failure without letting a store error replace the original one."""
    try:
        marked = store.fail_review(review_id, error_message)
    except Exception as e:
        logger.error("Could not mark review %s failed: %s", review_id, e)
        return
    if not marked:
        logger.warning("Review %s was not analyzing; failure not recorded", review_id)


def _post(poster: Poster, repo: RepositoryRecord, pr_number: int, result: ReviewResult, event: str) -> bool:
    """Post the review back to the PR. Failures are logged and never propagate."""
    try:
        poster(repo.full_name, repo.github_token, pr_number, format_review_comment(result), event)
    except Exception as e:
        logger.error("Failed to post review to %s#%s: %s", repo.full_name, pr_number, e)
        return False
    logger.info("Posted %s review to %s#%s", event, repo.full_name, pr_number)
    return True
