"""Abstract store interface.

The server, the CLI and the review pipeline depend on BaseStore, not on a
concrete backend, so a hosted Postgres or any other relational backend can
replace SQLite without touching them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from prpilot_store.models import RepositoryRecord, ReviewRecord, RuleRecord


class BaseStore(ABC):
    """Persistence for repositories, reviews and rules.

    Lookups return None (or an empty list) when nothing matches. Backend
    errors propagate; callers decide whether a failed write is fatal.
    """

    # ------------------------------------------------------------------ #
    # Repositories                                                         #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def add_repository(self, record: RepositoryRecord) -> RepositoryRecord:
        """Persist a new repository registration."""

    @abstractmethod
    def get_repository(self, repo_id: str, user_id: str | None = None) -> RepositoryRecord | None:
        """Return a repository by id, optionally restricted to its owner."""

    @abstractmethod
    def find_repository(self, user_id: str, owner: str, name: str) -> RepositoryRecord | None:
        """Return a user's registration of owner/name, if any."""

    @abstractmethod
    def get_active_repository_by_full_name(self, full_name: str) -> RepositoryRecord | None:
        """Return the active registration matching ``owner/name``."""

    @abstractmethod
    def list_repositories(self, user_id: str) -> list[RepositoryRecord]:
        """Return a user's repositories, newest first."""

    @abstractmethod
    def update_repository(self, repo_id: str, updates: dict) -> RepositoryRecord | None:
        """Apply column updates and return the refreshed record."""

    @abstractmethod
    def delete_repository(self, repo_id: str) -> None:
        """Delete a repository together with its reviews and rules."""

    # ------------------------------------------------------------------ #
    # Reviews                                                              #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def start_review(self, record: ReviewRecord) -> tuple[ReviewRecord, bool]:
        """Insert an ``analyzing`` review unless one already exists for the same PR.

        Returns ``(record, created)``. When another review for the same
        (repo_id, pr_number) is still analyzing, that existing record is
        returned with ``created=False`` and nothing is written.
        """

    @abstractmethod
    def complete_review(
        self,
        review_id: str,
        *,
        summary: str,
        quality_score: int,
        issues: list[dict],
        suggestions: list[dict],
        highlights: list[str],
        metrics: dict,
        files_reviewed: Iterable[str] = (),
        rule_violations: Iterable[dict] = (),
        overwrite: bool = False,
    ) -> bool:
        """Move an analyzing review to ``completed``. Returns False if nothing was written.

        With ``overwrite`` an already completed review is replaced too, so the
        last writer wins when several requests share one record. A failed
        review is never rewritten.
        """

    @abstractmethod
    def fail_review(self, review_id: str, error_message: str) -> bool:
        """Move an analyzing review to ``failed``. Returns False if it was not analyzing."""

    @abstractmethod
    def get_review(self, review_id: str, user_id: str | None = None) -> ReviewRecord | None:
        """Return a review by id, optionally restricted to its owner."""

    @abstractmethod
    def list_reviews(
        self,
        user_id: str,
        repo_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ReviewRecord], int]:
        """Return one page of a user's reviews (newest first) and the total count."""

    @abstractmethod
    def annotate_review(self, review_id: str, notes: str | None = None, resolved: bool | None = None) -> ReviewRecord:
        """Update user notes and the resolved flag of a review."""

    @abstractmethod
    def delete_review(self, review_id: str) -> None:
        """Delete a single review."""

    # ------------------------------------------------------------------ #
    # Rules                                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def add_rule(self, record: RuleRecord) -> RuleRecord:
        """Persist a new rule."""

    @abstractmethod
    def get_rule(self, rule_id: str, user_id: str | None = None) -> RuleRecord | None:
        """Return a rule by id, optionally restricted to its owner."""

    @abstractmethod
    def find_rule_by_name(self, user_id: str, name: str, repo_id: str | None = None) -> RuleRecord | None:
        """Return the user's rule with this name in the same repository scope."""

    @abstractmethod
    def list_rules(self, user_id: str, repo_id: str | None = None) -> list[RuleRecord]:
        """Return a user's rules, newest first, optionally for one repository."""

    @abstractmethod
    def list_active_rules(self, user_id: str, repo_id: str | None = None) -> list[RuleRecord]:
        """Return enabled rules that apply to a review.

        Includes the user's global rules (no repository) plus, when repo_id
        is given, the rules bound to that repository.
        """

    @abstractmethod
    def update_rule(self, rule_id: str, updates: dict) -> RuleRecord | None:
        """Apply column updates and return the refreshed rule."""

    @abstractmethod
    def delete_rule(self, rule_id: str) -> None:
        """Delete a single rule."""

    @abstractmethod
    def owned_rule_ids(self, user_id: str, rule_ids: Iterable[str]) -> set[str]:
        """Return the subset of rule_ids that belong to user_id."""

    @abstractmethod
    def set_rules_enabled(self, rule_ids: Iterable[str], enabled: bool) -> int:
        """Enable or disable rules in bulk and return the number updated."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional; subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
