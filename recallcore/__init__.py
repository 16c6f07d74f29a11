"""Recallcore - FSRS v4 review scheduling for logged knowledge topics."""

from .models import Grade, PriorityResult, SchedulingState, Topic, TopicState
from .constants import DEFAULT_WEIGHTS, DEFAULT_TARGET_RETRIEVABILITY
from .memory_model import next_interval, retrievability
from .scheduler import DEFAULT_SCHEDULER_CONFIG, SchedulerConfig, process_review
from .priority import RankedTopic, calculate_priority, rank_topics, select_next_topic
from .db import TopicDatabase
from .review_processor import ReviewProcessor, TopicEntry

__all__ = [
    "Grade",
    "PriorityResult",
    "SchedulingState",
    "Topic",
    "TopicState",
    "DEFAULT_WEIGHTS",
    "DEFAULT_TARGET_RETRIEVABILITY",
    "next_interval",
    "retrievability",
    "DEFAULT_SCHEDULER_CONFIG",
    "SchedulerConfig",
    "process_review",
    "RankedTopic",
    "calculate_priority",
    "rank_topics",
    "select_next_topic",
    "TopicDatabase",
    "ReviewProcessor",
    "TopicEntry",
]
