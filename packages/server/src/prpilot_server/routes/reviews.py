"""Direct review API: trigger a review from a submitted diff, list, read, annotate and delete."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from prpilot_core.models import ChangedFile, PullRequestInfo
from prpilot_core.reviewer import ReviewRequest, run_review
from prpilot_server.deps import get_config, get_store, require_reviewer
from prpilot_server.schemas import ReviewAnnotate, ReviewCreate
from prpilot_server.serializers import review_to_dict
from prpilot_store.base import BaseStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/review", status_code=201)
def create_review(
    body: ReviewCreate,
    reviewer=Depends(require_reviewer),
    store: BaseStore = Depends(get_store),
    config: dict = Depends(get_config),
):
    if body.repo_id and store.get_repository(body.repo_id, user_id=body.user_id) is None:
        raise HTTPException(status_code=404, detail="Repository not found or access denied")

    request = ReviewRequest(
        user_id=body.user_id,
        diff=body.diff,
        repo_id=body.repo_id or None,
        pr=PullRequestInfo(
            number=body.pr_number,
            title=body.pr_title,
            description=body.pr_description,
            url=body.pr_url,
            base_branch=body.base_branch,
            head_branch=body.head_branch,
        ),
        files=[ChangedFile(f.filename, f.additions, f.deletions) for f in body.files],
        custom_rules=[r.model_dump() for r in body.custom_rules] if body.custom_rules is not None else None,
        triggered_by="api",
    )
    try:
        outcome = run_review(
            request,
            store,
            reviewer,
            poster=None,
            max_diff_chars=config.get("max_diff_chars", 15000),
            reuse_in_progress=True,
        )
    except Exception as e:
        logger.exception("AI analysis failed for user %s", body.user_id)
        raise HTTPException(status_code=500, detail=f"AI analysis failed: {e}")

    result = outcome.result
    response = {
        "success": True,
        "reviewId": outcome.review_id,
        "review": {
            "summary": result.summary,
            "qualityScore": result.quality_score,
            "issues": result.issue_dicts(),
            "suggestions": result.suggestions,
            "highlights": result.highlights,
            "ruleViolations": result.rule_violations,
            "metrics": outcome.metrics,
        },
        "event": outcome.event,
        "createdAt": outcome.created_at,
        "saved": outcome.saved,
    }
    if outcome.warning:
        response["warning"] = outcome.warning
    return response


@router.get("/review")
def list_reviews(
    user_id: str = Query(..., alias="userId", min_length=1),
    repo_id: Optional[str] = Query(None, alias="repoId"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: BaseStore = Depends(get_store),
):
    reviews, total = store.list_reviews(user_id, repo_id=repo_id, limit=limit, offset=offset)
    return {
        "success": True,
        "reviews": [review_to_dict(r) for r in reviews],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/review/{review_id}")
def get_review(
    review_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    store: BaseStore = Depends(get_store),
):
    review = store.get_review(review_id, user_id=user_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    repository = store.get_repository(review.repo_id) if review.repo_id else None
    return {"success": True, "review": review_to_dict(review, repository)}


@router.patch("/review/{review_id}")
def annotate_review(review_id: str, body: ReviewAnnotate, store: BaseStore = Depends(get_store)):
    if store.get_review(review_id, user_id=body.user_id) is None:
        raise HTTPException(status_code=404, detail="Review not found or access denied")
    review = store.annotate_review(review_id, notes=body.notes, resolved=body.resolved)
    return {"success": True, "review": review_to_dict(review), "message": "Review updated successfully"}


@router.delete("/review/{review_id}")
def delete_review(
    review_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    store: BaseStore = Depends(get_store),
):
    if store.get_review(review_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Review not found or access denied")
    store.delete_review(review_id)
    return {"success": True, "message": "Review deleted successfully"}
