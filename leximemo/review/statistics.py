"""
Review statistics derived from an item collection.

This is a pure computation module with no I/O. Calendar-day questions
("reviewed today", "due tomorrow", streaks) are answered in the timezone
passed as ``tz``; ``None`` means the machine's local calendar.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo

from .models import InvalidInputError, LearningItem, ReviewStatistics, validate_timestamp


def calendar_day(timestamp_ms: int, tz: tzinfo | None = None) -> date:
    """Return the calendar date a millisecond timestamp falls on."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz).date()


def _review_day(timestamp_ms: int, tz: tzinfo | None) -> date | None:
    # Intervals have no ceiling, so stored timestamps can pass year 9999
    try:
        return calendar_day(timestamp_ms, tz)
    except (OverflowError, OSError, ValueError):
        return None


def day_start_ms(day: date, tz: tzinfo | None = None) -> int:
    """Millisecond timestamp of local midnight at the start of ``day``."""
    return int(datetime.combine(day, time.min, tzinfo=tz).timestamp() * 1000)


def day_bounds(now: int, tz: tzinfo | None = None) -> tuple[int, int, int]:
    """
    Return the starts of today, tomorrow and the day after, in ms.

    Today is the calendar day ``now`` falls on in ``tz``.
    """
    try:
        today = calendar_day(now, tz)
        return (
            day_start_ms(today, tz),
            day_start_ms(today + timedelta(days=1), tz),
            day_start_ms(today + timedelta(days=2), tz),
        )
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidInputError(f"now is outside the supported calendar range: {now}") from exc


def calculate_progress(items: Iterable[LearningItem]) -> int:
    """
    Percentage (0-100, rounded) of items reviewed at least once.

    Returns 0 for an empty collection.
    """
    items = list(items)
    if not items:
        return 0
    reviewed = sum(1 for item in items if item.is_reviewed)
    return int(reviewed * 100 / len(items) + 0.5)


def study_streak(items: Iterable[LearningItem], now: int, tz: tzinfo | None = None) -> int:
    """
    Count consecutive calendar days, ending today, with at least one review.

    A streak whose most recent day is not today is broken and counts as 0.
    Review times beyond the calendar range fall on no day.
    """
    validate_timestamp(now)
    day_bounds(now, tz)  # rejects a now outside the calendar range
    today = calendar_day(now, tz)

    review_days = sorted(
        {_review_day(item.last_reviewed_at, tz) for item in items if item.is_reviewed} - {None}
    )
    if not review_days or review_days[-1] != today:
        return 0

    streak = 1
    for i in range(len(review_days) - 2, -1, -1):
        if review_days[i + 1] - review_days[i] == timedelta(days=1):
            streak += 1
        else:
            break
    return streak


def review_statistics(
    items: Iterable[LearningItem],
    now: int,
    tz: tzinfo | None = None,
) -> ReviewStatistics:
    """
    Compute the review dashboard figures for ``items`` at ``now``.

    Args:
        items: Item collection (not modified)
        now: Reference time in ms since epoch
        tz: Calendar timezone (None for local time)

    Returns:
        ReviewStatistics snapshot
    """
    validate_timestamp(now)
    items = list(items)

    today_start, tomorrow_start, day_after_start = day_bounds(now, tz)

    today_reviews = 0
    pending_reviews = 0
    upcoming_reviews = 0
    for item in items:
        if item.is_reviewed and today_start <= item.last_reviewed_at < tomorrow_start:
            today_reviews += 1
        if item.next_review_at <= now:
            pending_reviews += 1
        if tomorrow_start <= item.next_review_at < day_after_start:
            upcoming_reviews += 1

    return ReviewStatistics(
        today_reviews=today_reviews,
        pending_reviews=pending_reviews,
        total_items=len(items),
        upcoming_reviews=upcoming_reviews,
        study_streak=study_streak(items, now, tz),
        progress=calculate_progress(items),
    )
