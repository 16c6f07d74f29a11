"""
Pydantic models for topics, their FSRS scheduling state and priority results.
"""

from __future__ import annotations

import uuid
from enum import Enum, IntEnum
from uuid import UUID
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import MAX_DIFFICULTY, MIN_DIFFICULTY, SECONDS_PER_DAY
from .exceptions import CorruptStateError


def ensure_utc(ts: datetime) -> datetime:
    """Ensures the given datetime is UTC. Assumes UTC if naive."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.replace(tzinfo=timezone.utc)
    if ts.tzinfo != timezone.utc:
        return ts.astimezone(timezone.utc)
    return ts


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end; negative if end precedes start."""
    delta = ensure_utc(end) - ensure_utc(start)
    return delta.total_seconds() / SECONDS_PER_DAY


class TopicState(str, Enum):
    """
    Represents the FSRS-defined state of a topic's memory trace.
    """

    New = "new"
    Learning = "learning"
    Review = "review"
    Relearning = "relearning"


class Grade(IntEnum):
    """
    Represents the outcome of a review. 1 is a failed recall, 4 the best.
    """

    Again = 1
    Hard = 2
    Good = 3
    Easy = 4


class SchedulingState(BaseModel):
    """
    Per-topic FSRS scheduling state.

    Values are immutable; every processed review produces a new instance.
    Stability, difficulty and due are only absent while the topic is new.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    state: TopicState = Field(
        default=TopicState.New,
        description="The current FSRS state of the topic.",
    )
    stability: Optional[float] = Field(
        default=None,
        gt=0,
        description="Stability of the memory trace (in days).",
    )
    difficulty: Optional[float] = Field(
        default=None,
        ge=MIN_DIFFICULTY,
        le=MAX_DIFFICULTY,
        description="Intrinsic difficulty in [1, 10].",
    )
    due: Optional[datetime] = Field(
        default=None,
        description="UTC timestamp when the topic is next due.",
    )
    last_reviewed: Optional[datetime] = Field(
        default=None,
        description="UTC timestamp of the most recent review.",
    )
    review_count: int = Field(
        default=0,
        ge=0,
        description="Number of processed reviews.",
    )
    lapses: int = Field(
        default=0,
        ge=0,
        description="Number of failed (grade 1) reviews.",
    )

    @field_validator("due", "last_reviewed")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store every timestamp as an aware UTC datetime."""
        return ensure_utc(v) if v is not None else None

    @classmethod
    def new(cls) -> "SchedulingState":
        """Default state for a freshly logged topic."""
        return cls()

    @property
    def is_new(self) -> bool:
        return self.state == TopicState.New

    def require_memory(self) -> Tuple[float, float]:
        """
        Return the (stability, difficulty) pair of a non-new state.

        Raises:
            CorruptStateError: If either value is missing or out of range.
        """
        if self.stability is None or self.difficulty is None:
            raise CorruptStateError(
                f"Topic in state '{self.state.value}' is missing "
                f"stability ({self.stability}) or difficulty ({self.difficulty})."
            )
        # model_copy and model_construct skip field validation
        if self.stability <= 0 or not (
            MIN_DIFFICULTY <= self.difficulty <= MAX_DIFFICULTY
        ):
            raise CorruptStateError(
                f"Topic in state '{self.state.value}' has out-of-range "
                f"stability ({self.stability}) or difficulty ({self.difficulty})."
            )
        return self.stability, self.difficulty


class Topic(BaseModel):
    """
    A knowledge topic the user asked about, with its scheduling state.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: UUID = Field(
        default_factory=uuid.uuid4,
        description="Unique UUIDv4 for the topic. Auto-generated.",
    )
    topic: str = Field(
        ...,
        min_length=1,
        description="The topic name.",
    )
    summary: Optional[str] = Field(
        default=None,
        description="One-sentence definition plus the context it came up in.",
    )
    tags: List[str] = Field(
        default_factory=list,
        description="Optional categorization tags.",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the topic was logged.",
    )
    fsrs: SchedulingState = Field(
        default_factory=SchedulingState.new,
        description="FSRS scheduling state.",
    )

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("tags")
    @classmethod
    def strip_blank_tags(cls, tags: List[str]) -> List[str]:
        """Drop empty tags and surrounding whitespace, keeping order."""
        return [tag.strip() for tag in tags if tag and tag.strip()]


class PriorityResult(BaseModel):
    """
    Urgency of a topic at a point in time. Higher priority is more urgent.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    priority: float
    is_overdue: bool
    retrievability: Optional[float] = None
    days_overdue: Optional[float] = None
    days_until_due: Optional[float] = None
