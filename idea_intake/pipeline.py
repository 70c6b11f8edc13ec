"""
Idea Intake Pipeline - Core execution logic.

This module orchestrates one submission end to end:

    RateLimiter → DuplicateDetector → create → Enricher → attach → re-read

Steps:
1. Admission: global and per-submitter hourly quotas
2. Load the recent active ideas (best effort; a failed read counts as empty)
3. Duplicate check against that window
4. Create the base record with status "new" (single atomic write)
5. Enrich the idea through the language model
6. Persist the enrichment onto the record
7. Re-read the record so the caller sees persisted state

Failure policy:
- Steps 1, 3 and 4 stop the submission (rate limited, duplicate, create failed)
- Steps 2, 5, 6 and 7 are absorbed: the record exists, possibly without enrichment
- Nothing is retried here; re-enrichment is an operator decision
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

from idea_intake.errors import (
    AdmissionDenied,
    DuplicateRejected,
    EnrichmentFailed,
    EnrichmentPersistFailed,
    IntakeError,
    StorageCreateFailed,
)
from idea_intake.models.idea import EnrichedPayload, IdeaRecord, IdeaSummary, Submission
from idea_intake.services.duplicates import DuplicateDetector
from idea_intake.services.enricher import Enricher
from idea_intake.services.llm import LanguageModel
from idea_intake.services.rate_limiter import RateLimiter
from idea_intake.storage.base import Storage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


# =============================================================================
# Deadline
# =============================================================================

class Deadline:
    """
    Time budget shared by the external calls of one submission.

    Args:
        seconds: Total budget; None means no deadline.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        """Seconds left (never negative), or None without a deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0


# =============================================================================
# Pipeline Result Data Structures
# =============================================================================

class IntakeOutcome(str, Enum):
    """What happened to a submission."""
    ENRICHED = "enriched"
    CREATED = "created"  # saved, enrichment unavailable
    RATE_LIMITED = "rate_limited"
    DUPLICATE = "duplicate"
    FAILED = "failed"

    @property
    def is_success(self) -> bool:
        """A record exists for the submission."""
        return self in (IntakeOutcome.ENRICHED, IntakeOutcome.CREATED)


@dataclass
class IntakeResult:
    """Complete result of one submission."""
    outcome: IntakeOutcome
    started_at: datetime
    finished_at: Optional[datetime] = None

    record: Optional[IdeaRecord] = None
    enriched: Optional[EnrichedPayload] = None

    # False when the enrichment was produced but could not be saved
    enrichment_persisted: bool = False

    # Duplicate details
    similar_id: Optional[int] = None
    reason: str = ""

    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_summary(self) -> str:
        """One-line human-readable summary for logs and the CLI."""
        if self.outcome is IntakeOutcome.ENRICHED:
            saved = "" if self.enrichment_persisted else " (enrichment not saved)"
            return f"Idea #{self.record.id} saved and enriched{saved}: {self.enriched.title}"
        if self.outcome is IntakeOutcome.CREATED:
            return f"Idea #{self.record.id} saved without enrichment"
        if self.outcome is IntakeOutcome.DUPLICATE:
            return f"Duplicate of idea #{self.similar_id}: {self.reason}"
        if self.outcome is IntakeOutcome.RATE_LIMITED:
            return "Rate limit exceeded"
        if self.outcome is IntakeOutcome.FAILED:
            return f"Failed: {self.error}"
        raise ValueError(f"unhandled outcome {self.outcome!r}")


# =============================================================================
# Pipeline Class
# =============================================================================

class IntakePipeline:
    """
    Orchestrates admission, deduplication, persistence and enrichment.

    Usage:
        pipeline = IntakePipeline(storage, language_model,
                                  rate_limiter=RateLimiter(5, 50))
        result = pipeline.submit(submission, timeout=60)
        print(result.to_summary())

    The pipeline holds no per-submission state, so one instance serves
    concurrent submissions from many worker threads.
    """

    def __init__(
        self,
        storage: Storage,
        language_model: Optional[LanguageModel] = None,
        rate_limiter: Optional[RateLimiter] = None,
        duplicate_detector: Optional[DuplicateDetector] = None,
        enricher: Optional[Enricher] = None,
        duplicate_window: int = 100,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the pipeline.

        Args:
            storage: Persistence backend.
            language_model: Used to build the detector and enricher when
                those are not given explicitly.
            rate_limiter: Admission control. Defaults to 5/user, 50 global per hour.
            duplicate_detector: Overrides the default detector.
            enricher: Overrides the default enricher.
            duplicate_window: How many recent active ideas to compare against.
            timeout: Default time budget for the external calls of one submission.
        """
        if language_model is None and (duplicate_detector is None or enricher is None):
            raise ValueError("language_model is required unless both detector and enricher are given")

        self.storage = storage
        self.rate_limiter = rate_limiter or RateLimiter(per_user=5, global_limit=50)
        self.duplicate_detector = duplicate_detector or DuplicateDetector(language_model)
        self.enricher = enricher or Enricher(language_model)
        self.duplicate_window = duplicate_window
        self.timeout = timeout

    def _load_candidates(self) -> List[IdeaSummary]:
        try:
            return self.storage.list_active_summaries(limit=self.duplicate_window)
        except Exception as e:
            logger.warning("Failed to load existing ideas for duplicate check: %s", e)
            return []

    def _check_duplicate(self, submission: Submission, deadline: Deadline) -> None:
        candidates = self._load_candidates()
        if candidates and deadline.expired:
            logger.warning("Deadline passed before duplicate check, skipping it")
            return

        try:
            verdict = self.duplicate_detector.check(
                submission.raw_text, candidates, timeout=deadline.remaining()
            )
        except Exception as e:
            logger.warning("Duplicate check failed: %s", e)
            return

        if verdict.is_duplicate:
            logger.info("Duplicate found: idea #%s - %s", verdict.similar_id, verdict.reason)
            raise DuplicateRejected(verdict.similar_id, verdict.reason)

    def _create(self, submission: Submission) -> IdeaRecord:
        try:
            record = self.storage.create_record(submission)
        except Exception as e:
            logger.error("Failed to create idea for user %s: %s", submission.user_id, e)
            raise StorageCreateFailed(e) from e
        logger.info("Idea created with ID %s", record.id)
        return record

    def _enrich(self, record: IdeaRecord, submission: Submission, deadline: Deadline) -> Optional[EnrichedPayload]:
        try:
            if deadline.expired:
                raise EnrichmentFailed("deadline exceeded before enrichment")
            return self.enricher.enrich(
                submission.raw_text, submission.display_name, timeout=deadline.remaining()
            )
        except Exception as e:
            logger.warning("Failed to enrich idea %s: %s", record.id, e)
            return None

    def _persist(self, record: IdeaRecord, enriched: EnrichedPayload) -> bool:
        try:
            self.storage.attach_enrichment(record.id, enriched)
        except Exception as e:
            error = EnrichmentPersistFailed(f"idea {record.id}: {e}")
            logger.warning("Failed to save enriched data: %s", error)
            return False
        return True

    def _reload(self, record: IdeaRecord) -> IdeaRecord:
        try:
            return self.storage.get_record(record.id)
        except Exception as e:
            logger.warning("Failed to re-read idea %s: %s", record.id, e)
            return record

    def _run(
        self,
        submission: Submission,
        timeout: Optional[float],
    ) -> Tuple[IdeaRecord, Optional[EnrichedPayload], bool]:
        deadline = Deadline(timeout if timeout is not None else self.timeout)
        logger.info(
            "CreateAndEnrich called for user %s: %.50s", submission.user_id, submission.raw_text
        )

        if not self.rate_limiter.allow(submission.user_id):
            logger.info("Rate limit exceeded for user %s", submission.user_id)
            raise AdmissionDenied(submission.user_id)

        self._check_duplicate(submission, deadline)

        record = self._create(submission)

        enriched = self._enrich(record, submission, deadline)
        if enriched is None:
            return record, None, False

        persisted = self._persist(record, enriched)
        if persisted:
            record = self._reload(record)
        return record, enriched, persisted

    def create_and_enrich(
        self,
        submission: Submission,
        timeout: Optional[float] = None,
    ) -> Tuple[IdeaRecord, Optional[EnrichedPayload]]:
        """
        Run the full intake sequence.

        Args:
            submission: The incoming idea.
            timeout: Time budget for the external calls; defaults to self.timeout.

        Returns:
            Tuple of (record, enriched). enriched is None when enrichment
            failed; the record exists either way.

        Raises:
            AdmissionDenied: Quota exhausted; nothing was read or written.
            DuplicateRejected: Same idea already active; nothing was written.
            StorageCreateFailed: The record could not be created.
        """
        record, enriched, _ = self._run(submission, timeout)
        return record, enriched

    def submit(self, submission: Submission, timeout: Optional[float] = None) -> IntakeResult:
        """
        Run the intake sequence and report the outcome without raising.

        Returns:
            IntakeResult describing one of: enriched, created without
            enrichment, rate limited, duplicate, or failed.
        """
        result = IntakeResult(outcome=IntakeOutcome.FAILED, started_at=datetime.now())

        try:
            record, enriched, persisted = self._run(submission, timeout)
        except AdmissionDenied:
            result.outcome = IntakeOutcome.RATE_LIMITED
        except DuplicateRejected as e:
            result.outcome = IntakeOutcome.DUPLICATE
            result.similar_id = e.similar_id
            result.reason = e.reason
        except IntakeError as e:
            result.error = str(e)
        else:
            result.record = record
            result.enriched = enriched
            if enriched is None:
                result.outcome = IntakeOutcome.CREATED
            else:
                result.outcome = IntakeOutcome.ENRICHED
                result.enrichment_persisted = persisted

        result.finished_at = datetime.now()
        logger.info("Submission from user %s: %s", submission.user_id, result.to_summary())
        return result


# =============================================================================
# Convenience Functions
# =============================================================================

def build_pipeline(settings=None, storage: Storage = None, language_model: LanguageModel = None) -> IntakePipeline:
    """
    Wire a pipeline from configuration.

    Args:
        settings: IntakeSettings; defaults to IntakeSettings.from_env().
        storage: Overrides the SQLite backend from settings.
        language_model: Overrides the provider client from settings.

    Returns:
        Ready-to-use IntakePipeline.
    """
    from idea_intake.config import IntakeSettings
    from idea_intake.services.enricher import load_system_prompt
    from idea_intake.services.llm import create_language_model
    from idea_intake.storage.sqlite import SQLiteStorage

    settings = settings or IntakeSettings.from_env()
    storage = storage or SQLiteStorage(settings.sqlite_path)
    language_model = language_model or create_language_model(
        settings.llm_provider, settings.llm_api_key, settings.llm_model
    )

    return IntakePipeline(
        storage=storage,
        language_model=language_model,
        rate_limiter=RateLimiter(settings.rate_limit_per_user, settings.rate_limit_global),
        enricher=Enricher(language_model, load_system_prompt(settings.system_prompt_file)),
        duplicate_window=settings.duplicate_window,
        timeout=settings.llm_timeout,
    )
