"""Database package for recallcore.

Only TopicDatabase is exported as the public API.
"""

from .database import TopicDatabase

__all__ = ["TopicDatabase"]
