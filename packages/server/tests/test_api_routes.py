"""Tests for the review, repository and rule management endpoints."""

import json

from fastapi.testclient import TestClient

from prpilot_server.app import create_app
from prpilot_server.routes.repositories import generate_webhook_secret
from prpilot_store.models import ReviewRecord, RuleRecord

BASE = "/api/prpilot"
DIFF = "diff --git a/app.py b/app.py\n--- a/app.py\n+++ b/app.py\n@@ -1 +1,2 @@\n x = 1\n+y = 2\n"


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class TestReviewApi:
    def test_create_review(self, client, store, poster):
        resp = client.post(
            f"{BASE}/review",
            json={"userId": "u1", "diff": DIFF, "prTitle": "Add y", "files": [{"filename": "app.py", "additions": 1}]},
        )

        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["saved"] is True
        assert data["review"]["qualityScore"] == 86
        assert data["review"]["metrics"]["totalIssues"] == 1
        assert data["event"] == "APPROVE"
        assert "warning" not in data
        assert store.get_review(data["reviewId"]).status == "completed"
        poster.assert_not_called()

    def test_rule_violations_returned_and_stored(self, client, store, reviewer):
        reviewer.reply = json.dumps(
            {
                "summary": "Debug output left in.",
                "quality_score": 75,
                "rule_violations": [{"rule": "No Console Logs", "file": "app.py", "line": 2}],
            }
        )

        resp = client.post(
            f"{BASE}/review",
            json={"userId": "u1", "diff": DIFF, "customRules": [{"name": "No Console Logs", "description": "d"}]},
        )

        violations = resp.json()["review"]["ruleViolations"]
        assert [(v["rule"], v["line"]) for v in violations] == [("No Console Logs", 2)]
        review_id = resp.json()["reviewId"]
        data = client.get(f"{BASE}/review/{review_id}", params={"userId": "u1"}).json()
        assert data["review"]["ruleViolations"] == violations

    def test_missing_fields_rejected(self, client, reviewer):
        resp = client.post(f"{BASE}/review", json={"userId": "u1"})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "diff is required"}
        assert reviewer.calls == 0

    def test_empty_diff_rejected(self, client):
        assert client.post(f"{BASE}/review", json={"userId": "u1", "diff": ""}).status_code == 400

    def test_unowned_repository(self, client, repo):
        resp = client.post(f"{BASE}/review", json={"userId": "u2", "diff": DIFF, "repoId": repo.id})
        assert resp.status_code == 404

    def test_no_model_configured(self, config, store):
        client = TestClient(create_app(config, store, None))
        resp = client.post(f"{BASE}/review", json={"userId": "u1", "diff": DIFF})
        assert resp.status_code == 503
        assert resp.json()["error"] == "AI service not configured"

    def test_model_failure(self, client, reviewer, store, mocker):
        mocker.patch.object(reviewer, "_call_api", side_effect=RuntimeError("rate limited"))
        resp = client.post(f"{BASE}/review", json={"userId": "u1", "diff": DIFF})
        assert resp.status_code == 500
        assert resp.json()["error"] == "AI analysis failed: rate limited"
        reviews, _ = store.list_reviews("u1")
        assert reviews[0].status == "failed"

    def test_list_paginates(self, client, store):
        for n in range(3):
            store.start_review(ReviewRecord(user_id="u1", pr_number=n))

        data = client.get(f"{BASE}/review", params={"userId": "u1", "limit": 2}).json()

        assert data["total"] == 3
        assert len(data["reviews"]) == 2
        assert data["limit"] == 2
        assert data["offset"] == 0

    def test_list_requires_user_and_valid_limit(self, client):
        assert client.get(f"{BASE}/review").status_code == 400
        assert client.get(f"{BASE}/review", params={"userId": "u1", "limit": 500}).status_code == 400

    def test_get_includes_repository(self, client, store, repo):
        review, _ = store.start_review(ReviewRecord(user_id="u1", repo_id=repo.id, pr_number=1))

        data = client.get(f"{BASE}/review/{review.id}", params={"userId": "u1"}).json()

        assert data["review"]["status"] == "analyzing"
        assert data["review"]["repository"] == {"fullName": "acme/api", "owner": "acme", "name": "api"}

    def test_get_missing_or_foreign(self, client, store):
        review, _ = store.start_review(ReviewRecord(user_id="u1"))
        assert client.get(f"{BASE}/review/nope").status_code == 404
        assert client.get(f"{BASE}/review/{review.id}", params={"userId": "u2"}).status_code == 404

    def test_annotate(self, client, store):
        review, _ = store.start_review(ReviewRecord(user_id="u1"))

        resp = client.patch(f"{BASE}/review/{review.id}", json={"userId": "u1", "notes": "ok", "resolved": True})

        assert resp.status_code == 200
        assert resp.json()["review"]["resolved"] is True
        assert resp.json()["review"]["userNotes"] == "ok"
        assert client.patch(f"{BASE}/review/{review.id}", json={"userId": "u2", "notes": "x"}).status_code == 404

    def test_delete(self, client, store):
        review, _ = store.start_review(ReviewRecord(user_id="u1"))
        assert client.delete(f"{BASE}/review/{review.id}", params={"userId": "u2"}).status_code == 404
        assert client.delete(f"{BASE}/review/{review.id}", params={"userId": "u1"}).status_code == 200
        assert store.get_review(review.id) is None


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class TestRepositoryApi:
    def test_register_returns_secret_and_webhook_url(self, client, store, mocker):
        access = mocker.patch("prpilot_server.routes.repositories.can_access_repo", return_value=True)

        resp = client.post(
            BASE, json={"userId": "u1", "repoOwner": "acme", "repoName": "web", "githubToken": "ghp_x"}
        )

        assert resp.status_code == 201
        data = resp.json()
        assert len(data["repo"]["webhookSecret"]) == 32
        assert data["repo"]["hasGithubToken"] is True
        assert "githubToken" not in data["repo"]
        assert data["webhookUrl"] == "https://pilot.example.com/api/prpilot/webhook"
        access.assert_called_once_with("acme/web", "ghp_x")
        assert store.find_repository("u1", "acme", "web").github_token == "ghp_x"

    def test_duplicate_registration(self, client, repo):
        resp = client.post(BASE, json={"userId": "u1", "repoOwner": "acme", "repoName": "api"})
        assert resp.status_code == 409

    def test_inaccessible_repository(self, client, store, mocker):
        mocker.patch("prpilot_server.routes.repositories.can_access_repo", return_value=False)

        resp = client.post(
            BASE, json={"userId": "u1", "repoOwner": "acme", "repoName": "secret", "githubToken": "bad"}
        )

        assert resp.status_code == 403
        assert resp.json()["error"] == "Unable to access repository"
        assert store.find_repository("u1", "acme", "secret") is None

    def test_list_hides_secrets(self, client, repo):
        data = client.get(BASE, params={"userId": "u1"}).json()
        assert data["count"] == 1
        assert "webhookSecret" not in data["repos"][0]

    def test_update(self, client, repo):
        resp = client.patch(BASE, json={"repoId": repo.id, "userId": "u1", "autoReview": False, "status": "inactive"})
        assert resp.status_code == 200
        assert resp.json()["repo"]["autoReview"] is False
        assert resp.json()["repo"]["status"] == "inactive"

    def test_update_rejects_bad_status_and_foreign_user(self, client, repo):
        assert client.patch(BASE, json={"repoId": repo.id, "userId": "u1", "status": "archived"}).status_code == 400
        assert client.patch(BASE, json={"repoId": repo.id, "userId": "u2", "autoReview": False}).status_code == 404

    def test_delete_cascades(self, client, store, repo):
        review, _ = store.start_review(ReviewRecord(user_id="u1", repo_id=repo.id, pr_number=1))

        resp = client.delete(BASE, params={"repoId": repo.id, "userId": "u1"})

        assert resp.status_code == 200
        assert store.get_review(review.id) is None

    def test_generated_secrets_are_alphanumeric(self):
        secret = generate_webhook_secret()
        assert len(secret) == 32
        assert secret.isalnum()
        assert secret != generate_webhook_secret()


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestRuleApi:
    def test_create_from_template(self, client):
        resp = client.post(f"{BASE}/rules", json={"userId": "u1", "templateId": "no-console"})
        assert resp.status_code == 201
        rule = resp.json()["rule"]
        assert rule["name"] == "No Console Logs"
        assert rule["templateId"] == "no-console"
        assert rule["enabled"] is True

    def test_list_with_templates(self, client, store):
        store.add_rule(RuleRecord(user_id="u1", name="r", description="d"))
        data = client.get(f"{BASE}/rules", params={"userId": "u1", "includeTemplates": "true"}).json()
        assert data["count"] == 1
        assert len(data["templates"]) == 8
        assert all(t["isTemplate"] for t in data["templates"])

    def test_requires_name_and_description(self, client):
        resp = client.post(f"{BASE}/rules", json={"userId": "u1", "name": "only name"})
        assert resp.status_code == 400

    def test_invalid_severity(self, client):
        resp = client.post(f"{BASE}/rules", json={"userId": "u1", "name": "n", "description": "d", "severity": "urgent"})
        assert resp.status_code == 400
        assert "severity" in resp.json()["error"]

    def test_duplicate_name(self, client):
        body = {"userId": "u1", "name": "n", "description": "d"}
        assert client.post(f"{BASE}/rules", json=body).status_code == 201
        assert client.post(f"{BASE}/rules", json=body).status_code == 409

    def test_unowned_repository(self, client, repo):
        resp = client.post(f"{BASE}/rules", json={"userId": "u2", "name": "n", "description": "d", "repoId": repo.id})
        assert resp.status_code == 404

    def test_update_and_delete(self, client, store):
        rule = store.add_rule(RuleRecord(user_id="u1", name="r", description="d"))

        resp = client.put(f"{BASE}/rules", json={"ruleId": rule.id, "userId": "u1", "severity": "critical"})
        assert resp.json()["rule"]["severity"] == "critical"

        assert client.delete(f"{BASE}/rules", params={"ruleId": rule.id, "userId": "u2"}).status_code == 404
        assert client.delete(f"{BASE}/rules", params={"ruleId": rule.id, "userId": "u1"}).status_code == 200
        assert store.get_rule(rule.id) is None

    def test_bulk_toggle(self, client, store):
        rules = [store.add_rule(RuleRecord(user_id="u1", name=f"r{i}", description="d")) for i in range(2)]

        resp = client.patch(f"{BASE}/rules", json={"userId": "u1", "ruleIds": [r.id for r in rules], "enabled": False})

        assert resp.json()["updatedCount"] == 2
        assert all(not r.enabled for r in store.list_rules("u1"))

    def test_bulk_toggle_rejects_foreign_rules(self, client, store):
        mine = store.add_rule(RuleRecord(user_id="u1", name="mine", description="d"))
        theirs = store.add_rule(RuleRecord(user_id="u2", name="theirs", description="d"))

        resp = client.patch(f"{BASE}/rules", json={"userId": "u1", "ruleIds": [mine.id, theirs.id], "enabled": False})

        assert resp.status_code == 403
        assert resp.json()["unauthorizedIds"] == [theirs.id]
        assert store.get_rule(mine.id).enabled is True

    def test_bulk_toggle_requires_ids(self, client):
        assert client.patch(f"{BASE}/rules", json={"userId": "u1", "ruleIds": [], "enabled": True}).status_code == 400

    def test_unknown_route_uses_error_envelope(self, client):
        resp = client.get("/api/prpilot/nowhere")
        assert resp.status_code == 404
        assert resp.json()["success"] is False
