"""
Core data model for Idea Intake.

Defines the submission that enters the pipeline, the persistent IdeaRecord,
the structured EnrichedPayload produced by the language model, and the
closed enumerations used for status, category, priority and complexity.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class _LabeledEnum(str, Enum):
    """String enum with a human-readable label and strict parsing."""

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()

    @classmethod
    def parse(cls, value: Any) -> "_LabeledEnum":
        """
        Convert a raw value to a member of this enum.

        Raises:
            ValueError: If the value is not one of the enum's values.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"invalid {cls.__name__} {value!r} (expected one of: {allowed})")


class IdeaStatus(_LabeledEnum):
    """Moderation lifecycle of an idea."""
    NEW = "new"
    REVIEWED = "reviewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    IMPLEMENTED = "implemented"

    @property
    def is_terminal(self) -> bool:
        """Closed ideas are excluded from duplicate checks."""
        return self in (IdeaStatus.REJECTED, IdeaStatus.IMPLEMENTED)


class IdeaCategory(_LabeledEnum):
    FEATURE = "feature"
    IMPROVEMENT = "improvement"
    BUG = "bug"
    INTEGRATION = "integration"
    OTHER = "other"


class IdeaPriority(_LabeledEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IdeaComplexity(_LabeledEnum):
    TRIVIAL = "trivial"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EPIC = "epic"


@dataclass(frozen=True)
class Submission:
    """
    A raw idea as it arrives from the chat platform.

    Attributes:
        raw_text: The idea text the user typed after the command.
        user_id: Numeric identity of the submitter on the chat platform.
        username: Platform handle, may be empty.
        first_name: Display first name, may be empty.
        chat_id: The chat the idea was posted in.
        message_id: The originating message (0 when not from chat).
    """
    raw_text: str
    user_id: int
    username: str = ""
    first_name: str = ""
    chat_id: int = 0
    message_id: int = 0

    @property
    def display_name(self) -> str:
        """Name used when addressing the submitter."""
        return self.username or self.first_name or f"user{self.user_id}"


def _string_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list, got {type(value).__name__}")
    return [str(v) for v in value]


@dataclass
class EnrichedPayload:
    """
    Structured analysis of an idea, as produced by the enrichment call.

    Produced at most once per record. A record without a payload is a
    valid final state: enrichment failed or was skipped.
    """

    REQUIRED_FIELDS = (
        "title",
        "summary",
        "detailed_description",
        "category",
        "priority",
        "complexity",
        "user_story",
        "acceptance_criteria",
    )

    title: str
    summary: str
    detailed_description: str
    category: IdeaCategory
    priority: IdeaPriority
    complexity: IdeaComplexity
    user_story: str
    acceptance_criteria: List[str] = field(default_factory=list)
    affected_components: List[str] = field(default_factory=list)
    technical_notes: Optional[str] = None
    related_features: List[str] = field(default_factory=list)
    potential_risks: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnrichedPayload":
        """
        Build a payload from decoded JSON.

        Raises:
            ValueError: If required fields are missing or enum values are unknown.
        """
        if not isinstance(data, dict):
            raise ValueError(f"payload must be a JSON object, got {type(data).__name__}")

        missing = [key for key in cls.REQUIRED_FIELDS if data.get(key) in (None, "")]
        if missing:
            raise ValueError(f"payload is missing required fields: {', '.join(missing)}")

        return cls(
            title=str(data["title"]).strip(),
            summary=str(data["summary"]).strip(),
            detailed_description=str(data["detailed_description"]).strip(),
            category=IdeaCategory.parse(data["category"]),
            priority=IdeaPriority.parse(data["priority"]),
            complexity=IdeaComplexity.parse(data["complexity"]),
            user_story=str(data["user_story"]).strip(),
            acceptance_criteria=_string_list(data, "acceptance_criteria"),
            affected_components=_string_list(data, "affected_components"),
            technical_notes=data.get("technical_notes") or None,
            related_features=_string_list(data, "related_features"),
            potential_risks=_string_list(data, "potential_risks"),
        )

    @classmethod
    def from_json(cls, text: str) -> "EnrichedPayload":
        return cls.from_dict(json.loads(text))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "title": self.title,
            "summary": self.summary,
            "detailed_description": self.detailed_description,
            "category": self.category.value,
            "priority": self.priority.value,
            "complexity": self.complexity.value,
            "affected_components": list(self.affected_components),
            "user_story": self.user_story,
            "acceptance_criteria": list(self.acceptance_criteria),
        }
        if self.technical_notes:
            data["technical_notes"] = self.technical_notes
        if self.related_features:
            data["related_features"] = list(self.related_features)
        if self.potential_risks:
            data["potential_risks"] = list(self.potential_risks)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass
class IdeaRecord:
    """
    A persisted idea.

    Owned by the storage backend; the intake pipeline only asks for
    creation and for attaching the enrichment payload.
    """
    id: int
    raw_text: str
    user_id: int
    username: str = ""
    first_name: str = ""
    chat_id: int = 0
    message_id: int = 0
    status: IdeaStatus = IdeaStatus.NEW
    enriched: Optional[EnrichedPayload] = None
    admin_notes: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_enriched(self) -> bool:
        return self.enriched is not None

    @property
    def title(self) -> str:
        return self.enriched.title if self.enriched else ""

    @property
    def category(self) -> Optional[IdeaCategory]:
        return self.enriched.category if self.enriched else None

    @property
    def priority(self) -> Optional[IdeaPriority]:
        return self.enriched.priority if self.enriched else None

    @property
    def complexity(self) -> Optional[IdeaComplexity]:
        return self.enriched.complexity if self.enriched else None

    @property
    def affected_components(self) -> List[str]:
        return list(self.enriched.affected_components) if self.enriched else []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "raw_text": self.raw_text,
            "user_id": self.user_id,
            "username": self.username,
            "first_name": self.first_name,
            "chat_id": self.chat_id,
            "message_id": self.message_id,
            "status": self.status.value,
            "title": self.title,
            "category": self.category.value if self.category else None,
            "priority": self.priority.value if self.priority else None,
            "complexity": self.complexity.value if self.complexity else None,
            "affected_components": self.affected_components,
            "enriched": self.enriched.to_dict() if self.enriched else None,
            "admin_notes": self.admin_notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"#{self.id} [{self.status.value}] {self.title or self.raw_text[:50]}"


@dataclass(frozen=True)
class IdeaSummary:
    """Lightweight view of an active idea, used for duplicate checking."""
    id: int
    title: str
    raw_text: str

    @property
    def label(self) -> str:
        """Title if known, otherwise the raw text cut to 100 characters."""
        if self.title:
            return self.title
        if len(self.raw_text) > 100:
            return self.raw_text[:100] + "..."
        return self.raw_text


@dataclass
class IdeaFilter:
    """Filters for listing ideas on the moderation surface."""
    statuses: List[IdeaStatus] = field(default_factory=list)
    categories: List[IdeaCategory] = field(default_factory=list)
    priorities: List[IdeaPriority] = field(default_factory=list)
    limit: int = 0
    offset: int = 0


@dataclass(frozen=True)
class DuplicateVerdict:
    """
    Transient result of a duplicate check.

    similar_id is only meaningful when is_duplicate is true.
    """
    is_duplicate: bool
    similar_id: Optional[int] = None
    reason: str = ""

    @classmethod
    def not_duplicate(cls) -> "DuplicateVerdict":
        return cls(is_duplicate=False)
