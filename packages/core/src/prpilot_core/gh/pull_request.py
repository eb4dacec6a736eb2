from __future__ import annotations

import logging

import requests
from github import Github, GithubException

from prpilot_core.errors import DiffFetchError

logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
USER_AGENT = "PRPilot-App"


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def fetch_diff(diff_url: str, token: str | None = None, session=None) -> str:
    """Download a PR's unified diff as text.

    One GET, no retry. Any network error or non-2xx status raises
    DiffFetchError.
    """
    headers = {"Accept": DIFF_MEDIA_TYPE, "User-Agent": USER_AGENT}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    http = session or requests
    try:
        response = http.get(diff_url, headers=headers)
    except requests.RequestException as e:
        raise DiffFetchError(f"Failed to fetch diff: {e}") from e

    if not response.ok:
        raise DiffFetchError(f"Failed to fetch diff: {response.status_code}", status_code=response.status_code)
    return response.text


def can_access_repo(repo_name: str, token: str) -> bool:
    """Return True if the token can read the repository."""
    try:
        get_repo(repo_name, token)
    except GithubException as e:
        logger.info("Token cannot access %s: %s", repo_name, e)
        return False
    return True


def post_review(repo_name: str, token: str, pr_number: int, body: str, event: str) -> None:
    """Create a PR review with a top-level body and an APPROVE/COMMENT/REQUEST_CHANGES event."""
    pr = get_pull(get_repo(repo_name, token), pr_number)
    pr.create_review(body=body, event=event)
