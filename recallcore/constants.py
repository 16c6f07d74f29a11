"""
FSRS v4 algorithm constants.

This module contains static scheduler parameters and ranking constants.
No runtime configuration or path defaults - pure constants only.
"""
from typing import Tuple

# Default FSRS v4 parameters (weights 'w').
# w[0..3]: initial stability per first grade (Again, Hard, Good, Easy).
# w[4..7]: difficulty anchor, first-grade slope, update slope, mean reversion.
# w[8..10]: stability growth after a successful recall.
# w[11..14]: stability after a lapse.
DEFAULT_WEIGHTS: Tuple[float, ...] = (
    0.4,   # w[0]
    0.6,   # w[1]
    2.4,   # w[2]
    5.8,   # w[3]
    4.93,  # w[4]
    0.94,  # w[5]
    0.86,  # w[6]
    0.01,  # w[7]
    1.49,  # w[8]
    0.14,  # w[9]
    0.94,  # w[10]
    2.18,  # w[11]
    0.05,  # w[12]
    0.34,  # w[13]
    1.26,  # w[14]
)

# Indices 0-14 are mandatory; 15 (hard penalty) and 16 (easy bonus) are optional.
MIN_WEIGHTS_LENGTH: int = 15
HARD_PENALTY_INDEX: int = 15
EASY_BONUS_INDEX: int = 16

DEFAULT_TARGET_RETRIEVABILITY: float = 0.9
DEFAULT_MAXIMUM_INTERVAL_DAYS: float = 365.0
MINIMUM_INTERVAL_DAYS: float = 1.0

MIN_DIFFICULTY: float = 1.0
MAX_DIFFICULTY: float = 10.0

# The forgetting curve R(t) = (1 + t / (DECAY_FACTOR * S)) ** -1
DECAY_FACTOR: float = 9.0

SECONDS_PER_DAY: float = 24 * 60 * 60

# Priority ranking
NEW_TOPIC_PRIORITY: float = 50.0
OVERDUE_BASE_PRIORITY: float = 100.0
OVERDUE_DECAY_SCALE: float = 100.0
UPCOMING_BASE_PRIORITY: float = 40.0
UPCOMING_PRIORITY_PER_DAY: float = 10.0

CONFIG_VERSION: str = "4"
DEFAULT_MAX_BACKUPS: int = 10
