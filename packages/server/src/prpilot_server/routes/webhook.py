"""GitHub webhook receiver: POST handles deliveries, GET describes the endpoint."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from prpilot_core.errors import DiffFetchError
from prpilot_core.models import PullRequestInfo
from prpilot_core.reviewer import ReviewRequest, run_review
from prpilot_core.webhook import describe_endpoint, is_reviewable_action, verify_signature
from prpilot_server.deps import get_config, get_poster, get_reviewer, get_store
from prpilot_store.base import BaseStore
from prpilot_store.models import RepositoryRecord

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/webhook")
def webhook_info():
    return describe_endpoint()


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    store: BaseStore = Depends(get_store),
    config: dict = Depends(get_config),
    reviewer=Depends(get_reviewer),
    poster=Depends(get_poster),
):
    event = request.headers.get("x-github-event")
    delivery_id = request.headers.get("x-github-delivery")
    signature = request.headers.get("x-hub-signature-256")
    raw_body = await request.body()

    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    logger.info("Received GitHub webhook: event=%s, delivery=%s", event, delivery_id)

    full_name = (payload.get("repository") or {}).get("full_name")
    if not full_name:
        raise HTTPException(status_code=400, detail="Repository information missing from payload")

    repo = await run_in_threadpool(store.get_active_repository_by_full_name, full_name)
    if repo is None:
        logger.info("Repository not registered: %s", full_name)
        return {"success": False, "message": "Repository not registered for PR reviews"}

    if repo.webhook_secret and not verify_signature(raw_body, signature, repo.webhook_secret):
        logger.warning("Invalid webhook signature for %s (delivery %s)", full_name, delivery_id)
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    if event == "pull_request":
        return await run_in_threadpool(
            _handle_pull_request, payload, repo, store, reviewer, poster, config, delivery_id
        )
    if event == "pull_request_review":
        return _handle_pull_request_review(payload)
    if event == "push":
        return _handle_push(payload, repo)
    if event == "ping":
        return {"success": True, "message": "Pong! Webhook configured successfully", "repository": full_name}
    return {"success": True, "message": f"Event '{event}' received but not processed"}


def _handle_pull_request(
    payload: dict,
    repo: RepositoryRecord,
    store: BaseStore,
    reviewer,
    poster,
    config: dict,
    delivery_id: str | None,
) -> dict:
    action = payload.get("action")
    if not is_reviewable_action(action):
        return {"success": True, "message": f"PR action '{action}' does not trigger review"}
    if not repo.auto_review:
        return {"success": True, "message": "Auto-review is disabled for this repository"}
    if reviewer is None:
        logger.error("Model client not configured; cannot review %s", repo.full_name)
        raise HTTPException(status_code=503, detail="AI service not configured")

    pr = payload.get("pull_request") or {}
    if not pr.get("diff_url") or pr.get("number") is None:
        raise HTTPException(status_code=400, detail="Pull request information missing from payload")

    request = ReviewRequest(
        user_id=repo.user_id,
        diff_url=pr["diff_url"],
        repository=repo,
        pr=PullRequestInfo.from_webhook(pr),
        triggered_by="webhook",
        delivery_id=delivery_id,
    )
    try:
        outcome = run_review(
            request,
            store,
            reviewer,
            poster=poster,
            max_diff_chars=config.get("max_diff_chars", 15000),
        )
    except DiffFetchError as e:
        logger.error("Error fetching PR diff for %s#%s: %s", repo.full_name, pr["number"], e)
        raise HTTPException(status_code=500, detail="Failed to fetch PR diff")
    except Exception as e:
        logger.exception("Review analysis failed for %s#%s", repo.full_name, pr["number"])
        raise HTTPException(status_code=500, detail=f"Review analysis failed: {e}")

    if outcome.duplicate:
        return {"success": True, "message": "Review already in progress", "reviewId": outcome.review_id}

    return {
        "success": True,
        "message": "PR review completed",
        "reviewId": outcome.review_id,
        "qualityScore": outcome.result.quality_score,
        "issueCount": len(outcome.result.issues),
        "event": outcome.event,
        "posted": outcome.posted,
    }


def _handle_pull_request_review(payload: dict) -> dict:
    review = payload.get("review") or {}
    pr = payload.get("pull_request") or {}
    logger.info(
        "PR #%s received review: %s from %s",
        pr.get("number"),
        review.get("state"),
        (review.get("user") or {}).get("login"),
    )
    return {"success": True, "message": "Review event logged"}


def _handle_push(payload: dict, repo: RepositoryRecord) -> dict:
    if not repo.review_on_push:
        return {"success": True, "message": "Push event received, review_on_push is disabled"}

    if payload.get("ref") != f"refs/heads/{repo.default_branch}":
        return {"success": True, "message": "Push to non-default branch, skipping review"}

    commits = payload.get("commits") or []
    logger.info("Push to %s:%s with %d commits", repo.full_name, repo.default_branch, len(commits))
    return {"success": True, "message": "Push event received", "commitCount": len(commits)}
