"""Exceptions raised by the review pipeline."""

from __future__ import annotations


class PRPilotError(Exception):
    """Base class for pipeline failures that end a single request."""


class DiffFetchError(PRPilotError):
    """The pull request diff could not be retrieved from the provider."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ReviewerNotConfiguredError(PRPilotError):
    """No model API key is configured, so no review can be produced."""
