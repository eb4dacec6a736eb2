"""FastAPI dependencies resolving the collaborators injected by create_app()."""

from __future__ import annotations

from fastapi import HTTPException, Request

from prpilot_core.providers.base import BaseReviewer
from prpilot_store.base import BaseStore


def get_store(request: Request) -> BaseStore:
    return request.app.state.store


def get_config(request: Request) -> dict:
    return request.app.state.config


def get_poster(request: Request):
    return request.app.state.poster


def get_reviewer(request: Request) -> BaseReviewer | None:
    return request.app.state.reviewer


def require_reviewer(request: Request) -> BaseReviewer:
    reviewer = request.app.state.reviewer
    if reviewer is None:
        raise HTTPException(status_code=503, detail="AI service not configured")
    return reviewer
