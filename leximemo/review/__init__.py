"""
LexiMemo Review Engine.

Pure SM-2 scheduling over immutable learning items, plus the
storage and service layers that surround it.

Components:
- LearningItem: Immutable item record with scheduling state
- SM2Scheduler: Spaced repetition algorithm
- review_statistics: Dashboard aggregates (due, streak, progress)
- ItemStore: SQLite persistence
- ReviewService: Load/review/save orchestration
"""

from .item_store import ItemNotFoundError, ItemRepository, ItemStore
from .models import (
    DAY_MS,
    DEFAULT_EASE_FACTOR,
    INITIAL_INTERVAL,
    LOCAL_USER_ID,
    MIN_EASE_FACTOR,
    InvalidInputError,
    ItemType,
    LearningItem,
    Quality,
    ReviewStatistics,
)
from .scheduler import SM2Config, SM2Scheduler, create_item, due_items, update_after_review
from .service import ReviewService
from .statistics import calculate_progress, review_statistics, study_streak

__all__ = [
    # Models
    "LearningItem",
    "ItemType",
    "Quality",
    "ReviewStatistics",
    "InvalidInputError",
    # Constants
    "DAY_MS",
    "DEFAULT_EASE_FACTOR",
    "INITIAL_INTERVAL",
    "LOCAL_USER_ID",
    "MIN_EASE_FACTOR",
    # Scheduling
    "SM2Config",
    "SM2Scheduler",
    "create_item",
    "update_after_review",
    "due_items",
    # Statistics
    "review_statistics",
    "study_streak",
    "calculate_progress",
    # Persistence
    "ItemRepository",
    "ItemStore",
    "ItemNotFoundError",
    # Orchestration
    "ReviewService",
]
