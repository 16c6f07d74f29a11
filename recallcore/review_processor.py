"""
Shared review workflow for recallcore.

The ReviewProcessor ties the pure scheduling engine to the topic database:
1. Timestamp handling
2. Grade validation
3. Scheduler computation inside a transactional read-modify-write
4. Priority ranking of stored topics
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from .db.database import TopicDatabase
from .models import Topic
from .priority import RankedTopic, select_next_topic
from .scheduler import SchedulerConfig, process_review, validate_grade

logger = logging.getLogger(__name__)


@dataclass
class TopicEntry:
    """A topic to log, before it receives an id and scheduling state."""

    topic: str
    summary: Optional[str] = None
    tags: List[str] = field(default_factory=list)


class ReviewProcessor:
    """
    Processes topic logging, review outcomes and next-topic selection
    against a TopicDatabase with a fixed scheduler configuration.
    """

    def __init__(self, db_manager: TopicDatabase, config: SchedulerConfig):
        """
        Args:
            db_manager: Database manager instance for persistence
            config: Scheduler configuration injected by the caller
        """
        self.db_manager = db_manager
        self.config = config

    def log_topics(
        self, entries: Iterable[TopicEntry], now: Optional[datetime] = None
    ) -> List[Topic]:
        """
        Log one or more topics as new, unscheduled topics.

        Returns:
            The stored Topic objects, in input order.
        """
        ts = now or datetime.now(timezone.utc)
        topics = [
            Topic(topic=e.topic, summary=e.summary, tags=list(e.tags), timestamp=ts)
            for e in entries
        ]
        self.db_manager.append_topics(topics)
        return topics

    def log_review_outcome(
        self,
        topic_id: UUID,
        grade: int,
        reviewed_at: Optional[datetime] = None,
    ) -> Topic:
        """
        Record a review grade for a topic and persist its next state.

        Args:
            topic_id: UUID of the reviewed topic
            grade: Review grade (1-4: Again, Hard, Good, Easy)
            reviewed_at: Review timestamp (defaults to current time)

        Returns:
            The topic with its updated scheduling state

        Raises:
            InvalidGradeError: If the grade is not 1-4 (checked before any I/O)
            TopicNotFoundError: If the topic does not exist
            SchedulingError: If the stored state cannot be scheduled
        """
        validate_grade(grade)
        ts = reviewed_at or datetime.now(timezone.utc)

        logger.debug(f"Processing review for topic {topic_id} with grade {grade}")

        try:
            updated = self.db_manager.update_topic_state(
                topic_id,
                lambda topic: process_review(topic.fsrs, grade, self.config, ts),
            )
        except Exception:
            logger.exception(f"Failed to process review for topic {topic_id}")
            raise

        logger.debug(
            f"Review processed for topic {topic_id}. "
            f"Next due: {updated.fsrs.due}, State: {updated.fsrs.state.value}"
        )
        return updated

    def review_next_topic(
        self, tag: Optional[str] = None, now: Optional[datetime] = None
    ) -> Optional[RankedTopic]:
        """
        Return the most urgent stored topic, optionally restricted to a tag,
        or None when no topic qualifies.
        """
        ts = now or datetime.now(timezone.utc)
        return select_next_topic(self.db_manager.get_topics(tag=tag), ts)
