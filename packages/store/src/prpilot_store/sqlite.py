"""SQLiteStore: file-based relational store for repositories, reviews and rules.

Schema:
  repositories: one row per registered repository (owner/name per user)
  reviews     : one row per review attempt; list-typed fields are JSON text
  rules       : user-defined review rules, optionally bound to a repository

Deleting a repository cascades to its reviews and rules via foreign keys.

Duplicate-analysis suppression is a datastore guarantee, not a read-then-write
check: the partial unique index ``idx_reviews_one_analyzing`` allows at most
one ``analyzing`` row per (repo_id, pr_number), so start_review() is a single
conditional insert.

Each operation opens its own short-lived connection, so one store instance is
safe to share between the request threads of the web server.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterable, Iterator

from prpilot_store.base import BaseStore
from prpilot_store.models import RepositoryRecord, ReviewRecord, RuleRecord, utc_now

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS repositories (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    owner           TEXT NOT NULL,
    name            TEXT NOT NULL,
    full_name       TEXT NOT NULL,
    provider        TEXT NOT NULL DEFAULT 'github',
    github_token    TEXT,
    webhook_secret  TEXT,
    auto_review     INTEGER NOT NULL DEFAULT 1,
    review_on_push  INTEGER NOT NULL DEFAULT 0,
    default_branch  TEXT NOT NULL DEFAULT 'main',
    status          TEXT NOT NULL DEFAULT 'active',
    created_at      TEXT,
    updated_at      TEXT,
    UNIQUE (user_id, owner, name)
);
CREATE INDEX IF NOT EXISTS idx_repositories_user ON repositories (user_id);
CREATE INDEX IF NOT EXISTS idx_repositories_full_name ON repositories (full_name);

CREATE TABLE IF NOT EXISTS reviews (
    id                   TEXT PRIMARY KEY,
    user_id              TEXT NOT NULL,
    repo_id              TEXT REFERENCES repositories (id) ON DELETE CASCADE,
    pr_number            INTEGER,
    pr_title             TEXT,
    pr_url               TEXT,
    base_branch          TEXT,
    head_branch          TEXT,
    pr_author            TEXT,
    status               TEXT NOT NULL DEFAULT 'pending',
    triggered_by         TEXT,
    webhook_delivery_id  TEXT,
    quality_score        INTEGER,
    summary              TEXT,
    issues_json          TEXT DEFAULT '[]',
    suggestions_json     TEXT DEFAULT '[]',
    highlights_json      TEXT DEFAULT '[]',
    metrics_json         TEXT,
    files_reviewed_json  TEXT DEFAULT '[]',
    rule_violations_json TEXT DEFAULT '[]',
    error_message        TEXT,
    user_notes           TEXT,
    resolved             INTEGER NOT NULL DEFAULT 0,
    resolved_at          TEXT,
    created_at           TEXT,
    updated_at           TEXT
);
CREATE INDEX IF NOT EXISTS idx_reviews_user ON reviews (user_id);
CREATE INDEX IF NOT EXISTS idx_reviews_repo ON reviews (repo_id, pr_number);
CREATE UNIQUE INDEX IF NOT EXISTS idx_reviews_one_analyzing
    ON reviews (repo_id, pr_number) WHERE status = 'analyzing';

CREATE TABLE IF NOT EXISTS rules (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    repo_id      TEXT REFERENCES repositories (id) ON DELETE CASCADE,
    name         TEXT NOT NULL,
    description  TEXT,
    category     TEXT,
    severity     TEXT NOT NULL DEFAULT 'medium',
    pattern      TEXT,
    template_id  TEXT,
    enabled      INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT,
    updated_at   TEXT
);
CREATE INDEX IF NOT EXISTS idx_rules_user ON rules (user_id, repo_id);
"""

_REPOSITORY_COLUMNS = {
    "auto_review",
    "review_on_push",
    "default_branch",
    "github_token",
    "webhook_secret",
    "status",
}
_RULE_COLUMNS = {"name", "description", "category", "severity", "pattern", "enabled", "repo_id"}


class SQLiteStore(BaseStore):
    """Stores PRPilot state in a local SQLite database file.

    The database file path defaults to `.prpilot.db` in the current working
    directory. Configure via .prpilot.yml: `store_path: /path/to/prpilot.db`.
    """

    def __init__(self, db_path: str = ".prpilot.db"):
        self._db_path = db_path
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------ #
    # Repositories                                                         #
    # ------------------------------------------------------------------ #

    def add_repository(self, record: RepositoryRecord) -> RepositoryRecord:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO repositories
                  (id, user_id, owner, name, full_name, provider, github_token, webhook_secret,
                   auto_review, review_on_push, default_branch, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.user_id,
                    record.owner,
                    record.name,
                    record.full_name,
                    record.provider,
                    record.github_token,
                    record.webhook_secret,
                    int(record.auto_review),
                    int(record.review_on_push),
                    record.default_branch,
                    record.status,
                    record.created_at,
                    record.updated_at,
                ),
            )
        return record

    def get_repository(self, repo_id: str, user_id: str | None = None) -> RepositoryRecord | None:
        sql = "SELECT * FROM repositories WHERE id=?"
        params: list = [repo_id]
        if user_id is not None:
            sql += " AND user_id=?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(sql, params).fetchone()
        return self._row_to_repository(row) if row else None

    def find_repository(self, user_id: str, owner: str, name: str) -> RepositoryRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM repositories WHERE user_id=? AND owner=? AND name=?",
                (user_id, owner, name),
            ).fetchone()
        return self._row_to_repository(row) if row else None

    def get_active_repository_by_full_name(self, full_name: str) -> RepositoryRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM repositories WHERE full_name=? AND status='active' ORDER BY created_at LIMIT 1",
                (full_name,),
            ).fetchone()
        return self._row_to_repository(row) if row else None

    def list_repositories(self, user_id: str) -> list[RepositoryRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM repositories WHERE user_id=? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_repository(r) for r in rows]

    def update_repository(self, repo_id: str, updates: dict) -> RepositoryRecord | None:
        values = {k: v for k, v in updates.items() if k in _REPOSITORY_COLUMNS}
        for flag in ("auto_review", "review_on_push"):
            if flag in values:
                values[flag] = int(bool(values[flag]))
        self._update("repositories", repo_id, values)
        return self.get_repository(repo_id)

    def delete_repository(self, repo_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM repositories WHERE id=?", (repo_id,))

    # ------------------------------------------------------------------ #
    # Reviews                                                              #
    # ------------------------------------------------------------------ #

    def start_review(self, record: ReviewRecord) -> tuple[ReviewRecord, bool]:
        record.status = "analyzing"
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO reviews
                      (id, user_id, repo_id, pr_number, pr_title, pr_url, base_branch, head_branch,
                       pr_author, status, triggered_by, webhook_delivery_id, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.user_id,
                        record.repo_id,
                        record.pr_number,
                        record.pr_title,
                        record.pr_url,
                        record.base_branch,
                        record.head_branch,
                        record.pr_author,
                        record.status,
                        record.triggered_by,
                        record.webhook_delivery_id,
                        record.created_at,
                        record.updated_at,
                    ),
                )
        except sqlite3.IntegrityError:
            existing = self._analyzing_review(record.repo_id, record.pr_number)
            if existing is None:
                raise
            logger.info(
                "Review %s for repo %s PR #%s is already analyzing", existing.id, record.repo_id, record.pr_number
            )
            return existing, False
        return record, True

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
        # A failed review is never revived; a completed one is only replaced on request.
        statuses = "('analyzing', 'completed')" if overwrite else "('analyzing')"
        with self._connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE reviews
                   SET status='completed', summary=?, quality_score=?, issues_json=?, suggestions_json=?,
                       highlights_json=?, metrics_json=?, files_reviewed_json=?, rule_violations_json=?,
                       updated_at=?
                 WHERE id=? AND status IN {statuses}
                """,
                (
                    summary,
                    quality_score,
                    json.dumps(issues),
                    json.dumps(suggestions),
                    json.dumps(highlights),
                    json.dumps(metrics),
                    json.dumps(list(files_reviewed)),
                    json.dumps(list(rule_violations)),
                    utc_now(),
                    review_id,
                ),
            )
        return cursor.rowcount > 0

    def fail_review(self, review_id: str, error_message: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE reviews SET status='failed', error_message=?, updated_at=? WHERE id=? AND status='analyzing'",
                (error_message, utc_now(), review_id),
            )
        return cursor.rowcount > 0

    def get_review(self, review_id: str, user_id: str | None = None) -> ReviewRecord | None:
        sql = "SELECT * FROM reviews WHERE id=?"
        params: list = [review_id]
        if user_id is not None:
            sql += " AND user_id=?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(sql, params).fetchone()
        return self._row_to_review(row) if row else None

    def list_reviews(
        self,
        user_id: str,
        repo_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ReviewRecord], int]:
        where = "WHERE user_id=?"
        params: list = [user_id]
        if repo_id is not None:
            where += " AND repo_id=?"
            params.append(repo_id)
        with self._connect() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM reviews {where}", params).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM reviews {where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()
        return [self._row_to_review(r) for r in rows], total

    def annotate_review(self, review_id: str, notes: str | None = None, resolved: bool | None = None) -> ReviewRecord:
        values: dict = {}
        if notes is not None:
            values["user_notes"] = notes
        if resolved is not None:
            values["resolved"] = int(resolved)
            values["resolved_at"] = utc_now() if resolved else None
        self._update("reviews", review_id, values)
        return self.get_review(review_id)

    def delete_review(self, review_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM reviews WHERE id=?", (review_id,))

    def _analyzing_review(self, repo_id: str | None, pr_number: int | None) -> ReviewRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM reviews WHERE repo_id IS ? AND pr_number IS ? AND status='analyzing'",
                (repo_id, pr_number),
            ).fetchone()
        return self._row_to_review(row) if row else None

    # ------------------------------------------------------------------ #
    # Rules                                                                #
    # ------------------------------------------------------------------ #

    def add_rule(self, record: RuleRecord) -> RuleRecord:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO rules
                  (id, user_id, repo_id, name, description, category, severity, pattern,
                   template_id, enabled, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.user_id,
                    record.repo_id,
                    record.name,
                    record.description,
                    record.category,
                    record.severity,
                    record.pattern,
                    record.template_id,
                    int(record.enabled),
                    record.created_at,
                    record.updated_at,
                ),
            )
        return record

    def get_rule(self, rule_id: str, user_id: str | None = None) -> RuleRecord | None:
        sql = "SELECT * FROM rules WHERE id=?"
        params: list = [rule_id]
        if user_id is not None:
            sql += " AND user_id=?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(sql, params).fetchone()
        return self._row_to_rule(row) if row else None

    def find_rule_by_name(self, user_id: str, name: str, repo_id: str | None = None) -> RuleRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM rules WHERE user_id=? AND name=? AND repo_id IS ?",
                (user_id, name, repo_id),
            ).fetchone()
        return self._row_to_rule(row) if row else None

    def list_rules(self, user_id: str, repo_id: str | None = None) -> list[RuleRecord]:
        sql = "SELECT * FROM rules WHERE user_id=?"
        params: list = [user_id]
        if repo_id is not None:
            sql += " AND repo_id=?"
            params.append(repo_id)
        with self._connect() as conn:
            rows = conn.execute(sql + " ORDER BY created_at DESC", params).fetchall()
        return [self._row_to_rule(r) for r in rows]

    def list_active_rules(self, user_id: str, repo_id: str | None = None) -> list[RuleRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM rules
                 WHERE user_id=? AND enabled=1 AND (repo_id IS NULL OR repo_id=?)
                 ORDER BY created_at
                """,
                (user_id, repo_id),
            ).fetchall()
        return [self._row_to_rule(r) for r in rows]

    def update_rule(self, rule_id: str, updates: dict) -> RuleRecord | None:
        values = {k: v for k, v in updates.items() if k in _RULE_COLUMNS}
        if "enabled" in values:
            values["enabled"] = int(bool(values["enabled"]))
        self._update("rules", rule_id, values)
        return self.get_rule(rule_id)

    def delete_rule(self, rule_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM rules WHERE id=?", (rule_id,))

    def owned_rule_ids(self, user_id: str, rule_ids: Iterable[str]) -> set[str]:
        ids = list(rule_ids)
        if not ids:
            return set()
        placeholders = ", ".join("?" for _ in ids)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id FROM rules WHERE user_id=? AND id IN ({placeholders})",
                [user_id, *ids],
            ).fetchall()
        return {r["id"] for r in rows}

    def set_rules_enabled(self, rule_ids: Iterable[str], enabled: bool) -> int:
        ids = list(rule_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE rules SET enabled=?, updated_at=? WHERE id IN ({placeholders})",
                [int(enabled), utc_now(), *ids],
            )
        return cursor.rowcount

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _update(self, table: str, row_id: str, values: dict) -> None:
        # Column names come from the fixed allow-lists above, never from callers.
        values = {**values, "updated_at": utc_now()}
        assignments = ", ".join(f"{column}=?" for column in values)
        with self._connect() as conn:
            conn.execute(f"UPDATE {table} SET {assignments} WHERE id=?", [*values.values(), row_id])

    @staticmethod
    def _row_to_repository(row: sqlite3.Row) -> RepositoryRecord:
        return RepositoryRecord(
            id=row["id"],
            user_id=row["user_id"],
            owner=row["owner"],
            name=row["name"],
            provider=row["provider"],
            github_token=row["github_token"],
            webhook_secret=row["webhook_secret"],
            auto_review=bool(row["auto_review"]),
            review_on_push=bool(row["review_on_push"]),
            default_branch=row["default_branch"],
            status=row["status"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )

    @staticmethod
    def _row_to_review(row: sqlite3.Row) -> ReviewRecord:
        return ReviewRecord(
            id=row["id"],
            user_id=row["user_id"],
            repo_id=row["repo_id"],
            pr_number=row["pr_number"],
            pr_title=row["pr_title"],
            pr_url=row["pr_url"],
            base_branch=row["base_branch"],
            head_branch=row["head_branch"],
            pr_author=row["pr_author"],
            status=row["status"],
            triggered_by=row["triggered_by"] or "",
            webhook_delivery_id=row["webhook_delivery_id"],
            quality_score=row["quality_score"],
            summary=row["summary"],
            issues=json.loads(row["issues_json"] or "[]"),
            suggestions=json.loads(row["suggestions_json"] or "[]"),
            highlights=json.loads(row["highlights_json"] or "[]"),
            metrics=json.loads(row["metrics_json"]) if row["metrics_json"] else None,
            files_reviewed=json.loads(row["files_reviewed_json"] or "[]"),
            rule_violations=json.loads(row["rule_violations_json"] or "[]"),
            error_message=row["error_message"],
            user_notes=row["user_notes"],
            resolved=bool(row["resolved"]),
            resolved_at=row["resolved_at"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> RuleRecord:
        return RuleRecord(
            id=row["id"],
            user_id=row["user_id"],
            repo_id=row["repo_id"],
            name=row["name"],
            description=row["description"] or "",
            category=row["category"] or "general",
            severity=row["severity"],
            pattern=row["pattern"],
            template_id=row["template_id"],
            enabled=bool(row["enabled"]),
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
