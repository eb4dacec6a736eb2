"""Repository registration: list, register, update settings and remove."""

from __future__ import annotations

import logging
import secrets
import string

from fastapi import APIRouter, Depends, HTTPException, Query

from prpilot_core.gh.pull_request import can_access_repo
from prpilot_server.deps import get_config, get_store
from prpilot_server.schemas import RepositoryCreate, RepositoryUpdate
from prpilot_server.serializers import repository_to_dict
from prpilot_store.base import BaseStore
from prpilot_store.models import RepositoryRecord

logger = logging.getLogger(__name__)

router = APIRouter()

WEBHOOK_SECRET_LENGTH = 32
_SECRET_ALPHABET = string.ascii_letters + string.digits


def generate_webhook_secret(length: int = WEBHOOK_SECRET_LENGTH) -> str:
    return "".join(secrets.choice(_SECRET_ALPHABET) for _ in range(length))


@router.get("")
def list_repositories(
    user_id: str = Query(..., alias="userId", min_length=1),
    store: BaseStore = Depends(get_store),
):
    repos = store.list_repositories(user_id)
    return {"success": True, "repos": [repository_to_dict(r) for r in repos], "count": len(repos)}


@router.post("", status_code=201)
def register_repository(
    body: RepositoryCreate,
    store: BaseStore = Depends(get_store),
    config: dict = Depends(get_config),
):
    if store.find_repository(body.user_id, body.repo_owner, body.repo_name) is not None:
        raise HTTPException(status_code=409, detail="Repository already connected")

    full_name = f"{body.repo_owner}/{body.repo_name}"
    if body.github_token and not can_access_repo(full_name, body.github_token):
        raise HTTPException(
            status_code=403,
            detail={"error": "Unable to access repository", "details": "Repository not found or access denied"},
        )

    repo = store.add_repository(
        RepositoryRecord(
            user_id=body.user_id,
            owner=body.repo_owner,
            name=body.repo_name,
            github_token=body.github_token or None,
            webhook_secret=generate_webhook_secret(),
            auto_review=body.auto_review,
            review_on_push=body.review_on_push,
            default_branch=body.default_branch,
        )
    )
    logger.info("Registered repository %s for user %s", full_name, body.user_id)
    return {
        "success": True,
        "repo": repository_to_dict(repo, include_secret=True),
        "message": "Repository added successfully",
        "webhookUrl": f"{config.get('app_url', '').rstrip('/')}/api/prpilot/webhook",
    }


@router.patch("")
def update_repository(body: RepositoryUpdate, store: BaseStore = Depends(get_store)):
    if store.get_repository(body.repo_id, user_id=body.user_id) is None:
        raise HTTPException(status_code=404, detail="Repository not found or access denied")

    updates = body.model_dump(exclude_none=True, exclude={"repo_id", "user_id"})
    repo = store.update_repository(body.repo_id, updates)
    return {"success": True, "repo": repository_to_dict(repo), "message": "Repository updated successfully"}


@router.delete("")
def delete_repository(
    repo_id: str = Query(..., alias="repoId", min_length=1),
    user_id: str = Query(..., alias="userId", min_length=1),
    store: BaseStore = Depends(get_store),
):
    if store.get_repository(repo_id, user_id=user_id) is None:
        raise HTTPException(status_code=404, detail="Repository not found or access denied")
    store.delete_repository(repo_id)
    logger.info("Removed repository %s and its reviews and rules", repo_id)
    return {"success": True, "message": "Repository removed successfully"}
