"""
Urgency ranking used to pick the next topic to review.

Overdue topics rank 100-200 by how far their recall probability has
decayed, new or unscheduled topics sit at a fixed 50, and upcoming topics
fall from 40 (due now) to 0 (due in four days or more).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .constants import (
    NEW_TOPIC_PRIORITY,
    OVERDUE_BASE_PRIORITY,
    OVERDUE_DECAY_SCALE,
    UPCOMING_BASE_PRIORITY,
    UPCOMING_PRIORITY_PER_DAY,
)
from .exceptions import InvalidTimelineError
from .memory_model import retrievability
from .models import PriorityResult, SchedulingState, Topic, days_between

logger = logging.getLogger(__name__)


@dataclass
class RankedTopic:
    topic: Topic
    result: PriorityResult

    @property
    def priority(self) -> float:
        return self.result.priority


def calculate_priority(
    state: Optional[SchedulingState], now: datetime
) -> PriorityResult:
    """
    Score how urgently a topic needs review at `now`.

    Raises:
        InvalidTimelineError: If `now` precedes the topic's last review.
    """
    if state is None or state.is_new or state.due is None:
        return PriorityResult(
            priority=NEW_TOPIC_PRIORITY, is_overdue=False, retrievability=None
        )

    days_until_due = days_between(now, state.due)

    elapsed_days = 0.0
    if state.last_reviewed is not None:
        elapsed_days = days_between(state.last_reviewed, now)
        if elapsed_days < 0:
            raise InvalidTimelineError(
                f"Ranking time {now.isoformat()} precedes last review "
                f"{state.last_reviewed.isoformat()}."
            )
    current_r = retrievability(state.stability, elapsed_days)

    if days_until_due < 0:
        return PriorityResult(
            priority=OVERDUE_BASE_PRIORITY + (1 - current_r) * OVERDUE_DECAY_SCALE,
            is_overdue=True,
            retrievability=current_r,
            days_overdue=-days_until_due,
        )

    return PriorityResult(
        priority=max(
            0.0, UPCOMING_BASE_PRIORITY - days_until_due * UPCOMING_PRIORITY_PER_DAY
        ),
        is_overdue=False,
        retrievability=current_r,
        days_until_due=days_until_due,
    )


def rank_topics(topics: Iterable[Topic], now: datetime) -> List[RankedTopic]:
    """
    Score every topic and sort by priority, highest first.

    Ties keep their input order.

    Raises:
        InvalidTimelineError: Naming the first topic last reviewed after `now`.
    """
    ranked = []
    for t in topics:
        try:
            result = calculate_priority(t.fsrs, now)
        except InvalidTimelineError as e:
            logger.error(f"Cannot rank topic {t.id} ('{t.topic}'): {e}")
            raise InvalidTimelineError(
                f"Topic {t.id}: {e}", original_exception=e
            ) from e
        ranked.append(RankedTopic(topic=t, result=result))
    return sorted(ranked, key=lambda r: r.priority, reverse=True)


def select_next_topic(
    topics: Iterable[Topic], now: datetime
) -> Optional[RankedTopic]:
    """Return the most urgent topic, or None for an empty pool."""
    ranked = rank_topics(topics, now)
    if not ranked:
        return None
    selected = ranked[0]
    logger.debug(
        f"Selected topic {selected.topic.id} ('{selected.topic.topic}') "
        f"with priority {selected.priority:.2f} out of {len(ranked)}"
    )
    return selected
