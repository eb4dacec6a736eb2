"""GitHub webhook authentication and dispatch policy."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="

REVIEWABLE_ACTIONS = frozenset({"opened", "synchronize", "reopened"})
SUPPORTED_EVENTS = ("pull_request", "pull_request_review", "push", "ping")

REQUIRED_HEADERS = {
    "x-github-event": "The GitHub event type",
    "x-hub-signature-256": "HMAC signature for verification (required when a webhook secret is configured)",
    "x-github-delivery": "Unique delivery ID",
}


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Check an ``x-hub-signature-256`` header against the raw request body.

    A missing header never verifies. The comparison is constant-time.
    """
    if not signature:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def is_reviewable_action(action: str | None) -> bool:
    return action in REVIEWABLE_ACTIONS


def describe_endpoint() -> dict:
    """Static self-description served on GET of the webhook route."""
    return {
        "status": "active",
        "supportedEvents": list(SUPPORTED_EVENTS),
        "documentation": "Configure this URL as your GitHub webhook endpoint with Content-Type: application/json",
        "requiredHeaders": dict(REQUIRED_HEADERS),
    }
