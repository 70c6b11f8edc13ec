"""
Base storage abstraction for Idea Intake.

Defines the abstract interface that all storage backends must implement.
This allows swapping between SQLite, an in-memory mock, or another database.
"""

from abc import ABC, abstractmethod
from typing import List

from idea_intake.models.idea import (
    EnrichedPayload,
    IdeaFilter,
    IdeaRecord,
    IdeaStatus,
    IdeaSummary,
    Submission,
)


class StorageError(Exception):
    """Raised when a storage backend cannot complete an operation."""


class RecordNotFound(StorageError):
    """Raised when no idea exists with the requested ID."""

    def __init__(self, idea_id: int):
        super().__init__(f"idea #{idea_id} not found")
        self.idea_id = idea_id


class Storage(ABC):
    """
    Abstract base class for all storage backends.

    The intake pipeline uses four operations:
    - create_record: persist a new idea with status "new" (one atomic write)
    - get_record: read an idea back
    - list_active_summaries: recent non-terminal ideas for duplicate checks
    - attach_enrichment: store the structured analysis on an idea

    The moderation surface additionally lists, counts, updates and deletes.

    Implementations serialize single-row writes themselves; callers do not
    coordinate concurrent updates (last writer wins).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the name of this storage backend.

        Used for logging and debugging.
        """
        pass

    @abstractmethod
    def create_record(self, submission: Submission) -> IdeaRecord:
        """
        Create a new idea with status "new".

        Args:
            submission: The raw submission to persist.

        Returns:
            The created IdeaRecord with its assigned ID.

        Raises:
            StorageError: If the record could not be created.
        """
        pass

    @abstractmethod
    def get_record(self, idea_id: int) -> IdeaRecord:
        """
        Retrieve an idea by ID.

        Raises:
            RecordNotFound: If no idea has this ID.
            StorageError: On backend failure.
        """
        pass

    @abstractmethod
    def list_active_summaries(self, limit: int = 100) -> List[IdeaSummary]:
        """
        List the most recent ideas that are not rejected or implemented.

        Args:
            limit: Maximum number of summaries, newest first.

        Returns:
            List of IdeaSummary instances.
        """
        pass

    @abstractmethod
    def attach_enrichment(self, idea_id: int, payload: EnrichedPayload) -> None:
        """
        Store the enrichment payload on an idea and refresh updated_at.

        Raises:
            RecordNotFound: If no idea has this ID.
            StorageError: On backend failure.
        """
        pass

    @abstractmethod
    def list_records(self, idea_filter: IdeaFilter = None) -> List[IdeaRecord]:
        """List ideas matching a filter, newest first."""
        pass

    @abstractmethod
    def count_records(self, idea_filter: IdeaFilter = None) -> int:
        """Count ideas matching a filter (limit/offset are ignored)."""
        pass

    @abstractmethod
    def update_status(self, idea_id: int, status: IdeaStatus) -> None:
        """Set the moderation status of an idea."""
        pass

    @abstractmethod
    def update_admin_notes(self, idea_id: int, notes: str) -> None:
        """Replace the moderator notes of an idea."""
        pass

    @abstractmethod
    def delete_record(self, idea_id: int) -> None:
        """Remove an idea."""
        pass

    def __str__(self) -> str:
        return f"Storage({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
