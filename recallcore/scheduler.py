# recallcore/scheduler.py

"""
Defines the review state machine: the BaseScheduler abstract class, the
FSRS v4 scheduler and the pure `process_review` transition function.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    CONFIG_VERSION,
    DEFAULT_MAXIMUM_INTERVAL_DAYS,
    DEFAULT_TARGET_RETRIEVABILITY,
    DEFAULT_WEIGHTS,
    MIN_WEIGHTS_LENGTH,
    MINIMUM_INTERVAL_DAYS,
)
from .exceptions import ConfigurationError, InvalidGradeError, InvalidTimelineError
from .memory_model import (
    clamp,
    initial_difficulty,
    initial_stability,
    next_interval,
    retrievability,
    update_difficulty,
    update_stability_failure,
    update_stability_success,
    validate_weights,
)
from .models import Grade, SchedulingState, TopicState, days_between, ensure_utc

logger = logging.getLogger(__name__)


class SchedulerConfig(BaseModel):
    """Configuration for the FSRS v4 scheduler."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = CONFIG_VERSION
    weights: Tuple[float, ...] = Field(default_factory=lambda: tuple(DEFAULT_WEIGHTS))
    target_retrievability: float = Field(
        default=DEFAULT_TARGET_RETRIEVABILITY, gt=0, lt=1
    )
    maximum_interval_days: float = Field(
        default=DEFAULT_MAXIMUM_INTERVAL_DAYS, gt=0
    )

    @field_validator("weights")
    @classmethod
    def check_weights_length(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        if len(v) < MIN_WEIGHTS_LENGTH:
            raise ValueError(
                f"At least {MIN_WEIGHTS_LENGTH} weights are required, got {len(v)}."
            )
        return v


DEFAULT_SCHEDULER_CONFIG = SchedulerConfig()

# (current state, failed recall) -> next state
TRANSITIONS: Dict[Tuple[TopicState, bool], TopicState] = {
    (TopicState.New, True): TopicState.Learning,
    (TopicState.New, False): TopicState.Review,
    (TopicState.Learning, True): TopicState.Relearning,
    (TopicState.Learning, False): TopicState.Review,
    (TopicState.Review, True): TopicState.Relearning,
    (TopicState.Review, False): TopicState.Review,
    (TopicState.Relearning, True): TopicState.Relearning,
    (TopicState.Relearning, False): TopicState.Review,
}


def validate_grade(grade: int) -> Grade:
    """Maps a 1-4 grade to Grade and validates it."""
    if (
        isinstance(grade, bool)
        or not isinstance(grade, int)
        or grade not in (1, 2, 3, 4)
    ):
        raise InvalidGradeError(
            f"Invalid grade: {grade}. Must be 1-4 (1=Again, 2=Hard, 3=Good, 4=Easy)."
        )
    return Grade(grade)


def process_review(
    state: SchedulingState,
    grade: int,
    config: SchedulerConfig,
    now: datetime,
) -> SchedulingState:
    """
    Compute the scheduling state that follows a review.

    Args:
        state: The topic's current scheduling state. Not modified.
        grade: The review grade (1=Again, 2=Hard, 3=Good, 4=Easy).
        config: Weights, target retrievability and maximum interval.
        now: The UTC timestamp of the review.

    Returns:
        A new SchedulingState with updated memory, due date and counters.

    Raises:
        InvalidGradeError: If the grade is not in 1-4.
        ConfigurationError: If the weights vector is too short or yields a
            non-positive stability.
        CorruptStateError: If a non-new state lacks stability or difficulty,
            or holds values outside their valid range.
        InvalidTimelineError: If `now` is earlier than the last review.
    """
    rating = validate_grade(grade)
    weights = config.weights
    validate_weights(weights)
    now = ensure_utc(now)

    elapsed_days = 0.0
    if state.last_reviewed is not None:
        elapsed_days = days_between(state.last_reviewed, now)
        if elapsed_days < 0:
            raise InvalidTimelineError(
                f"Review time {now.isoformat()} precedes last review "
                f"{state.last_reviewed.isoformat()}."
            )

    failed = rating == Grade.Again
    next_state = TRANSITIONS[(state.state, failed)]
    lapses = state.lapses

    if state.is_new:
        stability = initial_stability(rating, weights)
        difficulty = initial_difficulty(rating, weights)
        if failed:
            lapses = 1
    else:
        prev_stability, prev_difficulty = state.require_memory()
        current_r = retrievability(prev_stability, elapsed_days)
        difficulty = update_difficulty(prev_difficulty, rating, weights)
        if failed:
            stability = update_stability_failure(
                prev_stability, prev_difficulty, current_r, weights
            )
            lapses += 1
        else:
            stability = update_stability_success(
                prev_stability, prev_difficulty, current_r, rating, weights
            )

    if stability <= 0:
        raise ConfigurationError(
            f"Weights produced a non-positive stability ({stability}) "
            f"for a {rating.name} review."
        )

    interval = clamp(
        next_interval(stability, config.target_retrievability),
        MINIMUM_INTERVAL_DAYS,
        config.maximum_interval_days,
    )

    logger.debug(
        f"Review graded {rating.name}: {state.state.value} -> {next_state.value}, "
        f"S={stability:.4f}, D={difficulty:.4f}, interval={interval:.2f}d"
    )

    return SchedulingState(
        state=next_state,
        stability=stability,
        difficulty=difficulty,
        due=now + timedelta(days=interval),
        last_reviewed=now,
        review_count=state.review_count + 1,
        lapses=lapses,
    )


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers in recallcore.
    """

    @abstractmethod
    def compute_next_state(
        self, state: SchedulingState, grade: int, review_ts: datetime
    ) -> SchedulingState:
        """
        Computes the next scheduling state from the current one and a grade.

        Args:
            state: The topic's current scheduling state.
            grade: The grade given for the current review (1=Again, 2=Hard, 3=Good, 4=Easy).
            review_ts: The UTC timestamp of the current review.

        Returns:
            The new SchedulingState.

        Raises:
            InvalidGradeError: If the grade is invalid.
        """
        pass


class FSRSv4Scheduler(BaseScheduler):
    """
    FSRS v4 scheduler bound to a single configuration.
    """

    def __init__(self, config: SchedulerConfig = DEFAULT_SCHEDULER_CONFIG):
        self.config = config

    def compute_next_state(
        self, state: SchedulingState, grade: int, review_ts: datetime
    ) -> SchedulingState:
        return process_review(state, grade, self.config, review_ts)
