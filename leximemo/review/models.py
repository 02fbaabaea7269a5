"""
Review Models: Learning items and derived statistics.

Pure data structures with no I/O. A LearningItem is immutable; every
schedule transition produces a new value via the scheduler.

SM-2 Quality Scale:
0 - Total blackout
1 - Incorrect, recognized on seeing the answer
2 - Incorrect, but remembered with a hint
3 - Correct, with serious difficulty
4 - Correct, after hesitation
5 - Correct, perfect recall
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

# =============================================================================
# Constants
# =============================================================================

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL = 1  # days
DAY_MS = 24 * 60 * 60 * 1000
LOCAL_USER_ID = "local"
NEVER = 0  # last_reviewed_at sentinel


class InvalidInputError(ValueError):
    """Raised when a scheduler input would corrupt schedule state."""
    pass


class ItemType(str, Enum):
    """Kind of content being memorised."""

    WORD = "word"
    SENTENCE = "sentence"


class Quality(IntEnum):
    """SM-2 recall quality reported at review time."""

    BLACKOUT = 0
    INCORRECT = 1
    INCORRECT_EASY_RECALL = 2
    CORRECT_DIFFICULT = 3
    CORRECT_HESITANT = 4
    PERFECT = 5


def validate_quality(value: Any) -> int:
    """Return ``value`` as a plain int if it is a valid quality score."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"Quality must be an integer 0-5, got {value!r}")
    if not 0 <= value <= 5:
        raise InvalidInputError(f"Quality must be between 0 and 5, got {value}")
    return int(value)


def validate_timestamp(value: Any, name: str = "now") -> int:
    """Return ``value`` if it is a non-negative millisecond timestamp."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInputError(f"{name} must be a non-negative integer (ms), got {value!r}")
    return value


def coerce_item_type(value: Any) -> ItemType:
    try:
        return ItemType(value)
    except ValueError as exc:
        choices = ", ".join(t.value for t in ItemType)
        raise InvalidInputError(f"Unknown item type {value!r} (expected one of: {choices})") from exc


# =============================================================================
# Learning Item
# =============================================================================


@dataclass(frozen=True)
class LearningItem:
    """
    One discrete fact (word, phrase or sentence) being memorised.

    Timestamps are integer milliseconds since the epoch. ``last_reviewed_at``
    is 0 until the first review. ``next_review_at`` is always derived from
    ``interval`` and the time it was computed at.
    """

    id: str
    content: str
    translation: str
    created_at: int
    next_review_at: int
    item_type: ItemType = ItemType.WORD
    context: str | None = None
    last_reviewed_at: int = NEVER
    interval: int = INITIAL_INTERVAL
    ease_factor: float = DEFAULT_EASE_FACTOR
    user_id: str = LOCAL_USER_ID

    # Provenance (where the item was captured)
    source_url: str | None = None
    source_title: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidInputError("Item id must not be empty")
        if not isinstance(self.content, str) or not self.content.strip():
            raise InvalidInputError("Item content must be a non-empty string")
        if not isinstance(self.translation, str):
            raise InvalidInputError("Item translation must be a string")
        object.__setattr__(self, "item_type", coerce_item_type(self.item_type))

        validate_timestamp(self.created_at, "created_at")
        validate_timestamp(self.last_reviewed_at, "last_reviewed_at")
        validate_timestamp(self.next_review_at, "next_review_at")

        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 0:
            raise InvalidInputError(f"interval must be a non-negative integer, got {self.interval!r}")
        if (
            isinstance(self.ease_factor, bool)
            or not isinstance(self.ease_factor, (int, float))
            or not math.isfinite(self.ease_factor)
        ):
            raise InvalidInputError(f"ease_factor must be a finite number, got {self.ease_factor!r}")
        if self.ease_factor < MIN_EASE_FACTOR:
            raise InvalidInputError(
                f"ease_factor must be at least {MIN_EASE_FACTOR}, got {self.ease_factor}"
            )

    @property
    def is_reviewed(self) -> bool:
        """Whether the item has been reviewed at least once."""
        return self.last_reviewed_at > NEVER

    def is_due(self, now: int) -> bool:
        """Check if this item is eligible for review at ``now``."""
        return self.next_review_at <= now

    def to_dict(self) -> dict[str, Any]:
        """Encode as a flat record with camelCase keys."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.item_type.value,
            "content": self.content,
            "translation": self.translation,
            "createdAt": self.created_at,
            "lastReviewedAt": self.last_reviewed_at,
            "nextReviewAt": self.next_review_at,
            "interval": self.interval,
            "easeFactor": self.ease_factor,
            "userId": self.user_id,
        }
        if self.context is not None:
            data["context"] = self.context
        if self.source_url is not None:
            data["sourceUrl"] = self.source_url
        if self.source_title is not None:
            data["sourceTitle"] = self.source_title
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningItem:
        """Decode a record produced by :meth:`to_dict`."""
        try:
            return cls(
                id=data["id"],
                item_type=data.get("type", ItemType.WORD.value),
                content=data["content"],
                translation=data.get("translation", ""),
                context=data.get("context"),
                source_url=data.get("sourceUrl"),
                source_title=data.get("sourceTitle"),
                created_at=int(data["createdAt"]),
                last_reviewed_at=int(data.get("lastReviewedAt", NEVER)),
                next_review_at=int(data["nextReviewAt"]),
                interval=int(data.get("interval", INITIAL_INTERVAL)),
                ease_factor=float(data.get("easeFactor", DEFAULT_EASE_FACTOR)),
                user_id=data.get("userId") or LOCAL_USER_ID,
            )
        except KeyError as exc:
            raise InvalidInputError(f"Learning item record is missing {exc.args[0]!r}") from exc
        except InvalidInputError:
            raise
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidInputError(f"Malformed learning item record: {exc}") from exc


# =============================================================================
# Review Statistics
# =============================================================================


@dataclass(frozen=True)
class ReviewStatistics:
    """Read-only aggregate over an item collection at a point in time."""

    today_reviews: int = 0
    pending_reviews: int = 0
    total_items: int = 0
    upcoming_reviews: int = 0
    study_streak: int = 0
    progress: int = 0  # percent of items reviewed at least once

    def to_dict(self) -> dict[str, int]:
        return {
            "todayReviews": self.today_reviews,
            "pendingReviews": self.pending_reviews,
            "totalItems": self.total_items,
            "upcomingReviews": self.upcoming_reviews,
            "studyStreak": self.study_streak,
            "progress": self.progress,
        }
