"""Shared fixtures: an app wired to a temporary SQLite store, a stub model and a mock poster."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from prpilot_core.providers.base import BaseReviewer
from prpilot_server.app import create_app
from prpilot_store.models import RepositoryRecord
from prpilot_store.sqlite import SQLiteStore

REPLY = json.dumps(
    {
        "summary": "Small, safe change.",
        "quality_score": 86,
        "issues": [{"type": "style", "severity": "low", "title": "Long line", "file": "app.py", "line": 2}],
        "suggestions": [],
        "highlights": ["Focused diff"],
    }
)


class StubReviewer(BaseReviewer):
    MODEL = "stub"

    def __init__(self, reply=REPLY):
        self.reply = reply
        self.calls = 0

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        return self.reply


@pytest.fixture
def store(tmp_path):
    return SQLiteStore(db_path=str(tmp_path / "server.db"))


@pytest.fixture
def reviewer():
    return StubReviewer()


@pytest.fixture
def poster():
    return MagicMock()


@pytest.fixture
def config():
    return {"max_diff_chars": 15000, "app_url": "https://pilot.example.com/"}


@pytest.fixture
def client(config, store, reviewer, poster):
    return TestClient(create_app(config, store, reviewer, poster=poster))


@pytest.fixture
def repo(store):
    return store.add_repository(
        RepositoryRecord(
            user_id="u1",
            owner="acme",
            name="api",
            github_token="ghp_test",
            webhook_secret="topsecret",
        )
    )
