"""
SQLite storage backend for Idea Intake.

Implements the Storage interface on a local SQLite file. A connection is
opened per call, so the backend can be shared between worker threads.

=============================================================================
TABLE: ideas
=============================================================================

| Column              | Type     | Description                              |
|---------------------|----------|------------------------------------------|
| id                  | INTEGER  | Auto-assigned primary key                |
| telegram_message_id | INTEGER  | Originating chat message                 |
| telegram_chat_id    | INTEGER  | Originating chat                         |
| telegram_user_id    | INTEGER  | Submitter                                |
| telegram_username   | TEXT     | Submitter handle                         |
| telegram_first_name | TEXT     | Submitter first name                     |
| raw_text            | TEXT     | The idea as submitted                    |
| enriched_json       | TEXT     | EnrichedPayload as JSON ('' if absent)   |
| title               | TEXT     | Denormalized from the payload            |
| category            | TEXT     | Denormalized from the payload            |
| priority            | TEXT     | Denormalized from the payload            |
| complexity          | TEXT     | Denormalized from the payload            |
| affected_components | TEXT     | JSON list, denormalized from the payload |
| status              | TEXT     | Moderation status                        |
| admin_notes         | TEXT     | Moderator notes                          |
| created_at          | TEXT     | ISO timestamp                            |
| updated_at          | TEXT     | ISO timestamp                            |

=============================================================================
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, List, Tuple

from idea_intake.models.idea import (
    EnrichedPayload,
    IdeaFilter,
    IdeaRecord,
    IdeaStatus,
    IdeaSummary,
    Submission,
)
from idea_intake.storage.base import RecordNotFound, Storage, StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS ideas (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    telegram_message_id INTEGER NOT NULL DEFAULT 0,
    telegram_chat_id INTEGER NOT NULL DEFAULT 0,
    telegram_user_id INTEGER NOT NULL,
    telegram_username TEXT DEFAULT '',
    telegram_first_name TEXT DEFAULT '',
    raw_text TEXT NOT NULL,
    enriched_json TEXT DEFAULT '',
    title TEXT DEFAULT '',
    category TEXT DEFAULT '',
    priority TEXT DEFAULT '',
    complexity TEXT DEFAULT '',
    affected_components TEXT DEFAULT '',
    status TEXT NOT NULL DEFAULT 'new',
    admin_notes TEXT DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_ideas_status ON ideas(status);
CREATE INDEX IF NOT EXISTS idx_ideas_category ON ideas(category);
CREATE INDEX IF NOT EXISTS idx_ideas_priority ON ideas(priority);
CREATE INDEX IF NOT EXISTS idx_ideas_created_at ON ideas(created_at);
CREATE INDEX IF NOT EXISTS idx_ideas_chat_id ON ideas(telegram_chat_id);
"""

TERMINAL_STATUSES = tuple(s.value for s in IdeaStatus if s.is_terminal)


class SQLiteStorage(Storage):
    """
    SQLite-backed storage implementation.

    The schema is created on construction. Writes are serialized with a
    process-local lock; each write is a single statement, so a record is
    either fully created or not created at all.
    """

    def __init__(self, db_path: str = None):
        """
        Initialize SQLiteStorage.

        Args:
            db_path: Path to the database file. Defaults to config.SQLITE_PATH.
        """
        if db_path is None:
            from idea_intake.config import SQLITE_PATH
            db_path = SQLITE_PATH

        self.db_path = Path(db_path)
        self._write_lock = threading.Lock()
        self._init_db()

    @property
    def name(self) -> str:
        return "sqlite"

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the database file, directory and schema if missing."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            try:
                conn.execute("PRAGMA journal_mode=WAL")
            except sqlite3.DatabaseError as e:
                logger.warning("Failed to enable WAL mode: %s", e)
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        logger.info("SQLite database initialized at %s", self.db_path)

    def _execute_write(self, query: str, params: Tuple[Any, ...]) -> Tuple[int, int]:
        """Run one write statement and return (lastrowid, rowcount)."""
        with self._write_lock:
            conn = self._connect()
            try:
                cursor = conn.execute(query, params)
                conn.commit()
                return cursor.lastrowid, cursor.rowcount
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            finally:
                conn.close()

    # =========================================================================
    # Serialization: row <-> IdeaRecord
    # =========================================================================

    @staticmethod
    def row_to_record(row: sqlite3.Row) -> IdeaRecord:
        """Convert a database row to an IdeaRecord."""
        enriched = None
        if row["enriched_json"]:
            try:
                enriched = EnrichedPayload.from_json(row["enriched_json"])
            except ValueError as e:
                logger.warning("Idea #%s has unreadable enrichment: %s", row["id"], e)

        return IdeaRecord(
            id=row["id"],
            raw_text=row["raw_text"],
            user_id=row["telegram_user_id"],
            username=row["telegram_username"] or "",
            first_name=row["telegram_first_name"] or "",
            chat_id=row["telegram_chat_id"],
            message_id=row["telegram_message_id"],
            status=IdeaStatus.parse(row["status"]),
            enriched=enriched,
            admin_notes=row["admin_notes"] or "",
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _filter_clause(idea_filter: IdeaFilter) -> Tuple[str, List[Any]]:
        conditions = []
        args: List[Any] = []

        for column, values in (
            ("status", idea_filter.statuses),
            ("category", idea_filter.categories),
            ("priority", idea_filter.priorities),
        ):
            if values:
                placeholders = ",".join("?" for _ in values)
                conditions.append(f"{column} IN ({placeholders})")
                args.extend(v.value for v in values)

        if not conditions:
            return "", args
        return " WHERE " + " AND ".join(conditions), args

    # =========================================================================
    # Storage Interface Implementation
    # =========================================================================

    def create_record(self, submission: Submission) -> IdeaRecord:
        now = datetime.now().isoformat()
        row_id, _ = self._execute_write(
            """
            INSERT INTO ideas (
                telegram_message_id, telegram_chat_id, telegram_user_id,
                telegram_username, telegram_first_name, raw_text, status,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                submission.message_id,
                submission.chat_id,
                submission.user_id,
                submission.username,
                submission.first_name,
                submission.raw_text,
                IdeaStatus.NEW.value,
                now,
                now,
            ),
        )
        return self.get_record(row_id)

    def get_record(self, idea_id: int) -> IdeaRecord:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM ideas WHERE id = ?", (idea_id,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

        if row is None:
            raise RecordNotFound(idea_id)
        return self.row_to_record(row)

    def list_active_summaries(self, limit: int = 100) -> List[IdeaSummary]:
        placeholders = ",".join("?" for _ in TERMINAL_STATUSES)
        conn = self._connect()
        try:
            rows = conn.execute(
                f"""
                SELECT id, title, raw_text FROM ideas
                WHERE status NOT IN ({placeholders})
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (*TERMINAL_STATUSES, limit),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

        return [IdeaSummary(id=r["id"], title=r["title"] or "", raw_text=r["raw_text"]) for r in rows]

    def attach_enrichment(self, idea_id: int, payload: EnrichedPayload) -> None:
        _, updated = self._execute_write(
            """
            UPDATE ideas SET
                enriched_json = ?,
                title = ?,
                category = ?,
                priority = ?,
                complexity = ?,
                affected_components = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                payload.to_json(),
                payload.title,
                payload.category.value,
                payload.priority.value,
                payload.complexity.value,
                json.dumps(payload.affected_components, ensure_ascii=False),
                datetime.now().isoformat(),
                idea_id,
            ),
        )
        if updated == 0:
            raise RecordNotFound(idea_id)

    def list_records(self, idea_filter: IdeaFilter = None) -> List[IdeaRecord]:
        idea_filter = idea_filter or IdeaFilter()
        where, args = self._filter_clause(idea_filter)
        query = f"SELECT * FROM ideas{where} ORDER BY created_at DESC, id DESC"

        if idea_filter.limit > 0:
            query += " LIMIT ?"
            args.append(idea_filter.limit)
            if idea_filter.offset > 0:
                query += " OFFSET ?"
                args.append(idea_filter.offset)
        elif idea_filter.offset > 0:
            query += " LIMIT -1 OFFSET ?"
            args.append(idea_filter.offset)

        conn = self._connect()
        try:
            rows = conn.execute(query, args).fetchall()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

        return [self.row_to_record(row) for row in rows]

    def count_records(self, idea_filter: IdeaFilter = None) -> int:
        where, args = self._filter_clause(idea_filter or IdeaFilter())
        conn = self._connect()
        try:
            return conn.execute(f"SELECT COUNT(*) FROM ideas{where}", args).fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def update_status(self, idea_id: int, status: IdeaStatus) -> None:
        _, updated = self._execute_write(
            "UPDATE ideas SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, datetime.now().isoformat(), idea_id),
        )
        if updated == 0:
            raise RecordNotFound(idea_id)

    def update_admin_notes(self, idea_id: int, notes: str) -> None:
        _, updated = self._execute_write(
            "UPDATE ideas SET admin_notes = ?, updated_at = ? WHERE id = ?",
            (notes, datetime.now().isoformat(), idea_id),
        )
        if updated == 0:
            raise RecordNotFound(idea_id)

    def delete_record(self, idea_id: int) -> None:
        _, updated = self._execute_write("DELETE FROM ideas WHERE id = ?", (idea_id,))
        if updated == 0:
            raise RecordNotFound(idea_id)
