"""
In-memory storage backend for Idea Intake.

Used for tests and local development when no database is wanted.
"""

import copy
import threading
from datetime import datetime
from typing import Dict, List, Optional, Set

from idea_intake.models.idea import (
    EnrichedPayload,
    IdeaFilter,
    IdeaRecord,
    IdeaStatus,
    IdeaSummary,
    Submission,
)
from idea_intake.storage.base import RecordNotFound, Storage, StorageError


class MockStorage(Storage):
    """
    In-memory mock storage for testing and development.

    Data is stored in memory and lost when the process ends. IDs are
    assigned monotonically starting at 1. Records are copied on the way
    in and out, so callers never share state with the store.

    Failures can be injected per operation name for testing:

        storage = MockStorage(fail_on={"attach_enrichment"})
    """

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self._records: Dict[int, IdeaRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.fail_on: Set[str] = set(fail_on or ())

    @property
    def name(self) -> str:
        return "mock"

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"injected failure in {operation}")

    def _require(self, idea_id: int) -> IdeaRecord:
        record = self._records.get(idea_id)
        if record is None:
            raise RecordNotFound(idea_id)
        return record

    @staticmethod
    def _matches(record: IdeaRecord, idea_filter: IdeaFilter) -> bool:
        if idea_filter.statuses and record.status not in idea_filter.statuses:
            return False
        if idea_filter.categories and record.category not in idea_filter.categories:
            return False
        if idea_filter.priorities and record.priority not in idea_filter.priorities:
            return False
        return True

    def _newest_first(self) -> List[IdeaRecord]:
        return sorted(self._records.values(), key=lambda r: (r.created_at, r.id), reverse=True)

    def create_record(self, submission: Submission) -> IdeaRecord:
        """Store a new record with the next ID."""
        self._maybe_fail("create_record")
        with self._lock:
            now = datetime.now()
            record = IdeaRecord(
                id=self._next_id,
                raw_text=submission.raw_text,
                user_id=submission.user_id,
                username=submission.username,
                first_name=submission.first_name,
                chat_id=submission.chat_id,
                message_id=submission.message_id,
                status=IdeaStatus.NEW,
                created_at=now,
                updated_at=now,
            )
            self._records[record.id] = record
            self._next_id += 1
            return copy.deepcopy(record)

    def get_record(self, idea_id: int) -> IdeaRecord:
        self._maybe_fail("get_record")
        with self._lock:
            return copy.deepcopy(self._require(idea_id))

    def list_active_summaries(self, limit: int = 100) -> List[IdeaSummary]:
        self._maybe_fail("list_active_summaries")
        with self._lock:
            active = [r for r in self._newest_first() if not r.status.is_terminal]
            return [IdeaSummary(id=r.id, title=r.title, raw_text=r.raw_text) for r in active[:limit]]

    def attach_enrichment(self, idea_id: int, payload: EnrichedPayload) -> None:
        self._maybe_fail("attach_enrichment")
        with self._lock:
            record = self._require(idea_id)
            record.enriched = copy.deepcopy(payload)
            record.updated_at = datetime.now()

    def list_records(self, idea_filter: IdeaFilter = None) -> List[IdeaRecord]:
        self._maybe_fail("list_records")
        idea_filter = idea_filter or IdeaFilter()
        with self._lock:
            records = [r for r in self._newest_first() if self._matches(r, idea_filter)]
        records = records[idea_filter.offset:]
        if idea_filter.limit > 0:
            records = records[:idea_filter.limit]
        return copy.deepcopy(records)

    def count_records(self, idea_filter: IdeaFilter = None) -> int:
        idea_filter = idea_filter or IdeaFilter()
        with self._lock:
            return sum(1 for r in self._records.values() if self._matches(r, idea_filter))

    def update_status(self, idea_id: int, status: IdeaStatus) -> None:
        with self._lock:
            record = self._require(idea_id)
            record.status = status
            record.updated_at = datetime.now()

    def update_admin_notes(self, idea_id: int, notes: str) -> None:
        with self._lock:
            record = self._require(idea_id)
            record.admin_notes = notes
            record.updated_at = datetime.now()

    def delete_record(self, idea_id: int) -> None:
        with self._lock:
            self._require(idea_id)
            del self._records[idea_id]

    def clear(self) -> None:
        """Clear all records (for testing)."""
        with self._lock:
            self._records.clear()

    def count(self) -> int:
        """Return number of stored records (for testing)."""
        return len(self._records)
