"""
Error taxonomy for the intake pipeline.

Steps up to record creation fail fast with one of AdmissionDenied,
DuplicateRejected or StorageCreateFailed. Enrichment problems are
absorbed by the pipeline and only surface as EnrichmentFailed from
the Enricher itself, or EnrichmentPersistFailed in logs.
"""

from typing import Optional


class IntakeError(Exception):
    """Base class for intake outcomes that stop a submission."""


class AdmissionDenied(IntakeError):
    """The submitter or the whole bot is over its hourly quota."""

    def __init__(self, user_id: int):
        super().__init__(f"rate limit exceeded for user {user_id}")
        self.user_id = user_id


class DuplicateRejected(IntakeError):
    """The submission describes the same thing as an active idea."""

    def __init__(self, similar_id: int, reason: str = ""):
        super().__init__(f"duplicate of idea #{similar_id}: {reason}")
        self.similar_id = similar_id
        self.reason = reason


class StorageCreateFailed(IntakeError):
    """The base record could not be created; nothing was persisted."""

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__(f"failed to create idea: {cause}")
        self.cause = cause


class EnrichmentFailed(Exception):
    """The language model call or its response decoding failed."""


class EnrichmentPersistFailed(Exception):
    """The enrichment was produced but could not be saved onto the record."""
