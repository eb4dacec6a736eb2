"""FastAPI application factory.

Every collaborator (config, store, model client, review poster) is passed in
explicitly so tests and the CLI can assemble the app without globals.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from prpilot_core.gh.pull_request import post_review
from prpilot_core.providers.base import BaseReviewer
from prpilot_server.routes import repositories, reviews, rules, webhook
from prpilot_store.base import BaseStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/prpilot"


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query"))
        if error.get("type") == "missing":
            messages.append(f"{field} is required")
        elif field:
            messages.append(f"{field}: {error.get('msg')}")
        else:
            messages.append(str(error.get("msg")))
    return "; ".join(messages) or "Invalid request"


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    content = {"success": False}
    if isinstance(exc.detail, dict):
        content.update(exc.detail)
    else:
        content["error"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": _validation_message(exc)})


def create_app(config: dict, store: BaseStore, reviewer: BaseReviewer | None, poster=post_review) -> FastAPI:
    app = FastAPI(
        title="PRPilot API",
        description="Automated pull request reviews driven by GitHub webhooks.",
        version="0.1.0",
    )
    app.state.config = config
    app.state.store = store
    app.state.reviewer = reviewer
    app.state.poster = poster

    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(webhook.router, prefix=API_PREFIX, tags=["webhook"])
    app.include_router(reviews.router, prefix=API_PREFIX, tags=["reviews"])
    app.include_router(rules.router, prefix=API_PREFIX, tags=["rules"])
    app.include_router(repositories.router, prefix=API_PREFIX, tags=["repositories"])

    if reviewer is None:
        logger.warning("No model client configured; review endpoints will return 503")
    return app
