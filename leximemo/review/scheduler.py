"""
SM-2 Spaced Repetition Scheduler.

Implements:
- SM-2 algorithm for review intervals and ease factors
- Learning item construction with a one-day grace period
- Due-item filtering against an explicit reference time

Every operation is pure: callers pass ``now`` (ms since epoch) and receive
new values. Nothing here reads the clock, performs I/O or mutates its inputs.
"""

from __future__ import annotations

import math
import secrets
from collections.abc import Iterable
from dataclasses import dataclass, replace

from loguru import logger

from .models import (
    DAY_MS,
    DEFAULT_EASE_FACTOR,
    INITIAL_INTERVAL,
    LOCAL_USER_ID,
    MIN_EASE_FACTOR,
    NEVER,
    InvalidInputError,
    ItemType,
    LearningItem,
    coerce_item_type,
    validate_quality,
    validate_timestamp,
)

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass(frozen=True)
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_ease_factor: float = DEFAULT_EASE_FACTOR
    minimum_ease_factor: float = MIN_EASE_FACTOR
    initial_interval: int = INITIAL_INTERVAL  # Days for first review
    second_interval: int = 6  # Days after first successful review
    passing_quality: int = 3


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero for positive values."""
    return int(math.floor(value + 0.5))


def generate_item_id(now: int) -> str:
    """Build an id from a base-36 timestamp and a random suffix."""
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    stamp = ""
    value = now
    while True:
        value, rem = divmod(value, 36)
        stamp = digits[rem] + stamp
        if value == 0:
            break
    return stamp + secrets.token_hex(8)


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    The SuperMemo 2 algorithm calculates review intervals based on
    recall quality. Each item has:
    - Ease Factor (EF): How easy the item is (2.5 default, min 1.3, no ceiling)
    - Interval: Whole days until next review
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def create_item(
        self,
        content: str,
        translation: str,
        item_type: ItemType | str = ItemType.WORD,
        context: str | None = None,
        user_id: str = LOCAL_USER_ID,
        *,
        now: int,
        source_url: str | None = None,
        source_title: str | None = None,
    ) -> LearningItem:
        """
        Create a new learning item.

        New items are not due immediately: the first review becomes
        eligible one initial interval after creation.

        Args:
            content: Source-language text (must be non-empty)
            translation: Target-language rendering (may be empty)
            item_type: ItemType or its string value
            context: Optional surrounding text
            user_id: Owning user (defaults to the local sentinel)
            now: Creation time in ms since epoch

        Returns:
            A fresh LearningItem
        """
        validate_timestamp(now)
        if not isinstance(content, str) or not content.strip():
            raise InvalidInputError("Item content must be a non-empty string")

        return LearningItem(
            id=generate_item_id(now),
            item_type=coerce_item_type(item_type),
            content=content,
            translation=translation,
            context=context,
            source_url=source_url,
            source_title=source_title,
            created_at=now,
            last_reviewed_at=NEVER,
            next_review_at=now + self.config.initial_interval * DAY_MS,
            interval=self.config.initial_interval,
            ease_factor=self.config.initial_ease_factor,
            user_id=user_id or LOCAL_USER_ID,
        )

    def next_ease_factor(self, ease_factor: float, quality: int) -> float:
        """
        Apply the SM-2 ease adjustment.

        EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at the minimum.
        """
        miss = 5 - quality
        new_ef = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
        if new_ef < self.config.minimum_ease_factor:
            new_ef = self.config.minimum_ease_factor
        return new_ef

    def next_interval(self, interval: int, new_ease_factor: float, quality: int) -> int:
        """Compute the interval in days after a review of the given quality."""
        if quality < self.config.passing_quality:
            # Failed - reset to beginning
            return self.config.initial_interval

        # Kept for items whose interval was zeroed outside the failure path.
        if interval == 0:
            return self.config.initial_interval
        if interval == self.config.initial_interval:
            return self.config.second_interval
        return round_half_up(interval * new_ease_factor)

    def update_after_review(self, item: LearningItem, quality: int, now: int) -> LearningItem:
        """
        Calculate the next schedule for an item after a review.

        Args:
            item: Current item state
            quality: Recall quality (0-5)
            now: Review time in ms since epoch

        Returns:
            New LearningItem with interval, ease factor and timestamps replaced
        """
        q = validate_quality(quality)
        validate_timestamp(now)

        # Ease factor is updated first; the interval multiplies the new value.
        new_ef = self.next_ease_factor(item.ease_factor, q)
        new_interval = self.next_interval(item.interval, new_ef, q)

        updated = replace(
            item,
            interval=new_interval,
            ease_factor=new_ef,
            last_reviewed_at=now,
            next_review_at=now + new_interval * DAY_MS,
        )

        logger.debug(
            f"Reviewed {item.id}: quality={q}, interval={item.interval}d -> {new_interval}d, "
            f"ease={item.ease_factor:.2f} -> {new_ef:.2f}"
        )

        return updated

    def due_items(self, items: Iterable[LearningItem], now: int) -> list[LearningItem]:
        """
        Get items that are due for review.

        Args:
            items: Item collection (not modified)
            now: Reference time in ms since epoch

        Returns:
            Items with next_review_at <= now, in input order
        """
        return [item for item in items if item.next_review_at <= now]


# =============================================================================
# Module-level API
# =============================================================================

_default_scheduler = SM2Scheduler()


def create_item(
    content: str,
    translation: str,
    item_type: ItemType | str = ItemType.WORD,
    context: str | None = None,
    user_id: str = LOCAL_USER_ID,
    *,
    now: int,
    source_url: str | None = None,
    source_title: str | None = None,
) -> LearningItem:
    """Create a learning item with the default SM-2 configuration."""
    return _default_scheduler.create_item(
        content,
        translation,
        item_type,
        context,
        user_id,
        now=now,
        source_url=source_url,
        source_title=source_title,
    )


def update_after_review(item: LearningItem, quality: int, now: int) -> LearningItem:
    """Reschedule an item with the default SM-2 configuration."""
    return _default_scheduler.update_after_review(item, quality, now)


def due_items(items: Iterable[LearningItem], now: int) -> list[LearningItem]:
    """Filter items due at ``now``."""
    return _default_scheduler.due_items(items, now)
