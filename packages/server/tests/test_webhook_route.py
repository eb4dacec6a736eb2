"""Tests for the GitHub webhook endpoint."""

import json

import pytest
from fastapi.testclient import TestClient

from prpilot_core.errors import DiffFetchError
from prpilot_core.webhook import compute_signature
from prpilot_server.app import create_app
from prpilot_store.models import ReviewRecord

URL = "/api/prpilot/webhook"
DIFF = "diff --git a/app.py b/app.py\n--- a/app.py\n+++ b/app.py\n@@ -1,2 +1,3 @@\n x = 1\n+y = 2\n+z = 3\n"


def _pr_payload(action="opened", full_name="acme/api", number=12):
    return {
        "action": action,
        "repository": {"full_name": full_name},
        "pull_request": {
            "number": number,
            "title": "Add y and z",
            "body": "Adds two variables",
            "html_url": f"https://github.com/{full_name}/pull/{number}",
            "diff_url": f"https://github.com/{full_name}/pull/{number}.diff",
            "base": {"ref": "main"},
            "head": {"ref": "feature"},
            "user": {"login": "ana"},
        },
    }


def _deliver(client, payload, event="pull_request", secret="topsecret", signature=None):
    body = json.dumps(payload).encode()
    headers = {"x-github-event": event, "x-github-delivery": "delivery-1", "content-type": "application/json"}
    if signature is None and secret is not None:
        signature = compute_signature(body, secret)
    if signature is not None:
        headers["x-hub-signature-256"] = signature
    return client.post(URL, content=body, headers=headers)


@pytest.fixture
def fetch(mocker):
    return mocker.patch("prpilot_core.reviewer.fetch_diff", return_value=DIFF)


class TestSignatureGate:
    def test_bad_signature_rejected_without_side_effects(self, client, repo, store, reviewer, poster, fetch):
        resp = _deliver(client, _pr_payload(), secret="wrong-secret")

        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid webhook signature"}
        assert reviewer.calls == 0
        fetch.assert_not_called()
        poster.assert_not_called()
        assert store.list_reviews("u1") == ([], 0)

    def test_missing_signature_rejected(self, client, repo, reviewer):
        resp = _deliver(client, _pr_payload(), secret=None)
        assert resp.status_code == 401
        assert reviewer.calls == 0


class TestPullRequestEvents:
    def test_opened_pr_is_reviewed_stored_and_posted(self, client, repo, store, poster, fetch):
        resp = _deliver(client, _pr_payload())

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["message"] == "PR review completed"
        assert data["qualityScore"] == 86
        assert data["issueCount"] == 1
        assert data["event"] == "APPROVE"
        assert data["posted"] is True

        fetch.assert_called_once()
        review = store.get_review(data["reviewId"])
        assert review.status == "completed"
        assert review.triggered_by == "webhook"
        assert review.webhook_delivery_id == "delivery-1"
        assert review.pr_number == 12
        assert review.head_branch == "feature"
        assert review.files_reviewed == ["app.py"]

        full_name, token, number, body, event = poster.call_args.args
        assert (full_name, token, number, event) == ("acme/api", "ghp_test", 12, "APPROVE")
        assert "Long line" in body

    def test_duplicate_while_analyzing(self, client, repo, store, reviewer, fetch):
        existing, _ = store.start_review(ReviewRecord(user_id="u1", repo_id=repo.id, pr_number=12))

        resp = _deliver(client, _pr_payload(action="synchronize"))

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Review already in progress", "reviewId": existing.id}
        assert reviewer.calls == 0

    def test_non_reviewable_action_ignored(self, client, repo, reviewer):
        resp = _deliver(client, _pr_payload(action="closed"))
        assert resp.status_code == 200
        assert "does not trigger review" in resp.json()["message"]
        assert reviewer.calls == 0

    def test_auto_review_disabled(self, client, repo, store, reviewer):
        store.update_repository(repo.id, {"auto_review": False})
        resp = _deliver(client, _pr_payload())
        assert resp.json()["message"] == "Auto-review is disabled for this repository"
        assert reviewer.calls == 0

    def test_diff_fetch_failure(self, client, repo, store, mocker):
        mocker.patch("prpilot_core.reviewer.fetch_diff", side_effect=DiffFetchError("Failed to fetch diff: 404", 404))

        resp = _deliver(client, _pr_payload())

        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to fetch PR diff"
        reviews, _ = store.list_reviews("u1")
        assert reviews[0].status == "failed"

    def test_missing_pull_request_details(self, client, repo):
        payload = {"action": "opened", "repository": {"full_name": "acme/api"}, "pull_request": {"number": 3}}
        resp = _deliver(client, payload)
        assert resp.status_code == 400

    def test_no_model_configured(self, config, store, repo, poster):
        client = TestClient(create_app(config, store, None, poster=poster))
        resp = _deliver(client, _pr_payload())
        assert resp.status_code == 503
        assert resp.json()["error"] == "AI service not configured"


class TestOtherDeliveries:
    def test_unregistered_repository(self, client, repo):
        resp = _deliver(client, _pr_payload(full_name="someone/else"))
        assert resp.status_code == 200
        assert resp.json()["success"] is False

    def test_invalid_json(self, client):
        resp = client.post(URL, content=b"{not json", headers={"x-github-event": "ping"})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Invalid JSON payload"}

    def test_missing_repository(self, client):
        resp = _deliver(client, {"zen": "Keep it simple"}, event="ping", secret=None)
        assert resp.status_code == 400

    def test_ping(self, client, repo):
        resp = _deliver(client, {"zen": "hi", "repository": {"full_name": "acme/api"}}, event="ping")
        assert resp.status_code == 200
        assert resp.json()["message"].startswith("Pong!")

    def test_push_with_review_on_push_disabled(self, client, repo):
        payload = {"ref": "refs/heads/main", "repository": {"full_name": "acme/api"}, "commits": [{}, {}]}
        resp = _deliver(client, payload, event="push")
        assert "review_on_push is disabled" in resp.json()["message"]

    def test_push_to_default_branch(self, client, repo, store):
        store.update_repository(repo.id, {"review_on_push": True})
        payload = {"ref": "refs/heads/main", "repository": {"full_name": "acme/api"}, "commits": [{}, {}]}
        resp = _deliver(client, payload, event="push")
        assert resp.json()["commitCount"] == 2

    def test_push_to_other_branch(self, client, repo, store):
        store.update_repository(repo.id, {"review_on_push": True})
        payload = {"ref": "refs/heads/dev", "repository": {"full_name": "acme/api"}, "commits": []}
        resp = _deliver(client, payload, event="push")
        assert "non-default branch" in resp.json()["message"]

    def test_unhandled_event(self, client, repo):
        resp = _deliver(client, {"repository": {"full_name": "acme/api"}}, event="issues")
        assert resp.json() == {"success": True, "message": "Event 'issues' received but not processed"}

    def test_describe_endpoint(self, client):
        resp = client.get(URL)
        assert resp.status_code == 200
        assert resp.json()["status"] == "active"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
