"""
Data models module.

Defines submissions, persisted idea records, enrichment payloads and
the closed enumerations used across the project.
"""

from idea_intake.models.idea import (
    DuplicateVerdict,
    EnrichedPayload,
    IdeaCategory,
    IdeaComplexity,
    IdeaFilter,
    IdeaPriority,
    IdeaRecord,
    IdeaStatus,
    IdeaSummary,
    Submission,
)

__all__ = [
    "DuplicateVerdict",
    "EnrichedPayload",
    "IdeaCategory",
    "IdeaComplexity",
    "IdeaFilter",
    "IdeaPriority",
    "IdeaRecord",
    "IdeaStatus",
    "IdeaSummary",
    "Submission",
]
