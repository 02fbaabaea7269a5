"""
Unit tests for the SM-2 scheduler.

Covers:
- Item construction (grace period, defaults, validation)
- The review recurrence (ease update, interval branches, rounding)
- Due-item filtering

Expected values are derived from the SM-2 formula itself rather than
transcribed, so the tests cannot drift from the recurrence.

Run: pytest tests/unit/test_scheduler.py -v
"""

import math
import random
from dataclasses import replace

import pytest

from leximemo.review import (
    DAY_MS,
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    InvalidInputError,
    ItemType,
    Quality,
    SM2Config,
    SM2Scheduler,
    create_item,
    due_items,
    update_after_review,
)
from leximemo.review.scheduler import generate_item_id, round_half_up


def expected_ease(ease, quality):
    """Reference SM-2 ease update."""
    new_ease = ease + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    return max(MIN_EASE_FACTOR, new_ease)


def expected_interval(interval, ease, quality):
    """Reference SM-2 interval update (ease is the already-updated value)."""
    if quality < 3:
        return 1
    if interval == 0:
        return 1
    if interval == 1:
        return 6
    return math.floor(interval * ease + 0.5)


class TestCreateItem:
    """Test item construction."""

    def test_defaults(self, now):
        item = create_item("converge", "to come together", now=now)

        assert item.content == "converge"
        assert item.translation == "to come together"
        assert item.item_type is ItemType.WORD
        assert item.created_at == now
        assert item.last_reviewed_at == 0
        assert item.interval == 1
        assert item.ease_factor == DEFAULT_EASE_FACTOR
        assert item.user_id == "local"
        assert item.context is None

    def test_first_review_is_one_day_out(self, now):
        """New items are not due until a full day has passed."""
        item = create_item("converge", "", now=now)

        assert item.next_review_at == now + DAY_MS
        assert not item.is_due(now)
        assert not item.is_due(now + DAY_MS - 1)
        assert item.is_due(now + DAY_MS)

    def test_created_at_epoch(self):
        item = create_item("converge", "", now=0)
        assert item.next_review_at == 86_400_000

    def test_optional_fields(self, now):
        item = create_item(
            "It rains.",
            "Il pleut.",
            "sentence",
            context="Outside, it rains.",
            user_id="user-42",
            now=now,
            source_url="https://example.com/weather",
            source_title="Weather",
        )

        assert item.item_type is ItemType.SENTENCE
        assert item.context == "Outside, it rains."
        assert item.user_id == "user-42"
        assert item.source_url == "https://example.com/weather"
        assert item.source_title == "Weather"

    def test_translation_may_be_empty(self, now):
        assert create_item("converge", "", now=now).translation == ""

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_empty_content_rejected(self, now, content):
        with pytest.raises(InvalidInputError):
            create_item(content, "x", now=now)

    def test_unknown_type_rejected(self, now):
        with pytest.raises(InvalidInputError):
            create_item("converge", "", "phrase", now=now)

    @pytest.mark.parametrize("bad_now", [-1, 1.5, "0", None])
    def test_invalid_now_rejected(self, bad_now):
        with pytest.raises(InvalidInputError):
            create_item("converge", "", now=bad_now)

    def test_ids_are_unique(self, now):
        ids = {create_item("converge", "", now=now).id for _ in range(1000)}
        assert len(ids) == 1000

    def test_id_starts_with_base36_timestamp(self):
        assert generate_item_id(36).startswith("10")
        assert generate_item_id(0).startswith("0")
        assert len(generate_item_id(0)) == 1 + 16


class TestEaseFactor:
    """Test the ease factor update."""

    @pytest.mark.parametrize("quality", range(6))
    def test_matches_formula(self, make_item, now, quality):
        item = make_item()
        updated = update_after_review(item, quality, now + DAY_MS)
        assert updated.ease_factor == pytest.approx(expected_ease(DEFAULT_EASE_FACTOR, quality))

    def test_perfect_recall_adds_point_one(self, make_item, now):
        updated = update_after_review(make_item(), Quality.PERFECT, now)
        assert updated.ease_factor == pytest.approx(2.6)

    def test_quality_four_keeps_ease(self, make_item, now):
        updated = update_after_review(make_item(), 4, now)
        assert updated.ease_factor == pytest.approx(DEFAULT_EASE_FACTOR)

    def test_penalty_grows_superlinearly(self, scheduler):
        deltas = [scheduler.next_ease_factor(10.0, q) - 10.0 for q in range(6)]
        steps = [deltas[q + 1] - deltas[q] for q in range(5)]
        # Each step up in quality recovers less than the one before it
        assert all(a > b for a, b in zip(steps, steps[1:]))

    def test_floor_after_many_blackouts(self, make_item, now):
        item = make_item()
        for i in range(50):
            item = update_after_review(item, 0, now + i * DAY_MS)
            assert item.ease_factor >= MIN_EASE_FACTOR
        assert item.ease_factor == MIN_EASE_FACTOR

    def test_no_ceiling(self, make_item, now):
        item = make_item()
        t = now
        for _ in range(30):
            t = item.next_review_at
            item = update_after_review(item, 5, t)
        assert item.ease_factor == pytest.approx(DEFAULT_EASE_FACTOR + 30 * 0.1)
        assert item.ease_factor > 5.0


class TestIntervals:
    """Test interval transitions."""

    def test_second_step_is_six_days(self, make_item, now):
        """interval=1 with quality 5 jumps to 6, not round(1 * 2.6)."""
        updated = update_after_review(make_item(), 5, now + DAY_MS)
        assert updated.interval == 6

    @pytest.mark.parametrize("quality", [3, 4, 5])
    def test_zero_interval_passes_to_one(self, make_item, now, quality):
        item = replace(make_item(), interval=0)
        assert update_after_review(item, quality, now).interval == 1

    @pytest.mark.parametrize("quality", [0, 1, 2])
    def test_failure_resets_to_one(self, make_item, now, quality):
        item = replace(make_item(), interval=40, ease_factor=3.1)
        assert update_after_review(item, quality, now).interval == 1

    @pytest.mark.parametrize("interval", [2, 6, 15, 100, 1000])
    def test_failure_reset_any_interval(self, make_item, now, interval):
        item = replace(make_item(), interval=interval)
        assert update_after_review(item, 2, now).interval == 1

    def test_multiplies_by_updated_ease(self, make_item, now):
        """The new ease, not the old one, multiplies the interval."""
        item = replace(make_item(), interval=10, ease_factor=2.0)
        updated = update_after_review(item, 5, now)
        assert updated.interval == round_half_up(10 * 2.1)
        assert updated.interval == 21

    def test_rounds_half_up(self, make_item, now):
        # 5 * 2.5 = 12.5 -> 13 (banker's rounding would give 12)
        item = replace(make_item(), interval=5, ease_factor=2.5)
        assert update_after_review(item, 4, now).interval == 13

    def test_round_half_up_helper(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(14.76) == 15
        assert round_half_up(14.49) == 14
        assert round_half_up(1.0) == 1


class TestUpdateAfterReview:
    """Test the full review update."""

    def test_timestamps(self, make_item, now):
        reviewed_at = now + 3 * DAY_MS
        updated = update_after_review(make_item(), 5, reviewed_at)

        assert updated.last_reviewed_at == reviewed_at
        assert updated.next_review_at == reviewed_at + updated.interval * DAY_MS

    def test_identity_fields_unchanged(self, make_item, now):
        item = make_item(context="They converge here.", user_id="u1", source_title="Maps")
        updated = update_after_review(item, 1, now + DAY_MS)

        for field in ("id", "content", "translation", "context", "created_at", "user_id", "item_type", "source_title"):
            assert getattr(updated, field) == getattr(item, field)

    def test_input_not_mutated(self, make_item, now):
        item = make_item()
        snapshot = item.to_dict()
        update_after_review(item, 0, now + DAY_MS)
        assert item.to_dict() == snapshot

    def test_concrete_scenario(self):
        """Create at t=0, review at each due time with qualities 5 then 3."""
        item = create_item("converge", "to come together", now=0)
        assert (item.interval, item.ease_factor, item.next_review_at) == (1, 2.5, 86_400_000)

        t1 = 86_400_000
        first = update_after_review(item, 5, t1)
        assert first.interval == 6
        assert first.ease_factor == pytest.approx(2.6)
        assert first.next_review_at == t1 + 6 * DAY_MS == 604_800_000

        t2 = first.next_review_at
        second = update_after_review(first, 3, t2)
        ease2 = expected_ease(first.ease_factor, 3)
        assert second.ease_factor == pytest.approx(ease2)
        assert second.interval == expected_interval(6, ease2, 3) == 15
        assert second.next_review_at == t2 + 15 * DAY_MS

    def test_deterministic_sequence(self, now):
        """Replaying the same reviews gives identical records."""
        qualities = [5, 4, 3, 5, 2, 5, 5, 4, 0, 3, 5, 5]

        def run():
            item = create_item("converge", "", now=now)
            history = []
            for q in qualities:
                item = update_after_review(item, q, item.next_review_at)
                history.append((item.interval, item.ease_factor, item.next_review_at, item.last_reviewed_at))
            return history

        first, second = run(), run()
        assert first == second
        assert [h[0] for h in first] == _reference_intervals(qualities)

    def test_random_sequences_follow_formula(self, now):
        rng = random.Random(20240315)
        for _ in range(50):
            item = create_item("converge", "", now=now)
            interval, ease = item.interval, item.ease_factor
            for _ in range(20):
                q = rng.randint(0, 5)
                ease = expected_ease(ease, q)
                interval = expected_interval(interval, ease, q)
                item = update_after_review(item, q, item.next_review_at)
                assert item.interval == interval
                assert item.ease_factor == pytest.approx(ease)
                assert item.interval >= 1
                assert item.ease_factor >= MIN_EASE_FACTOR

    @pytest.mark.parametrize("quality", [-1, 6, 10, 2.5, "3", None, True])
    def test_invalid_quality_rejected(self, make_item, now, quality):
        with pytest.raises(InvalidInputError):
            update_after_review(make_item(), quality, now)

    def test_invalid_now_rejected(self, make_item):
        with pytest.raises(InvalidInputError):
            update_after_review(make_item(), 5, -10)

    def test_quality_enum_accepted(self, make_item, now):
        updated = update_after_review(make_item(), Quality.CORRECT_DIFFICULT, now)
        assert updated.ease_factor == pytest.approx(expected_ease(DEFAULT_EASE_FACTOR, 3))


class TestCustomConfig:
    """Test SM2Config overrides."""

    def test_custom_steps(self, now):
        scheduler = SM2Scheduler(SM2Config(initial_interval=2, second_interval=10, initial_ease_factor=2.0))
        item = scheduler.create_item("converge", "", now=now)

        assert item.interval == 2
        assert item.next_review_at == now + 2 * DAY_MS
        assert item.ease_factor == 2.0
        assert scheduler.update_after_review(item, 5, now).interval == 10
        assert scheduler.update_after_review(item, 1, now).interval == 2

    def test_custom_floor(self, now):
        scheduler = SM2Scheduler(SM2Config(minimum_ease_factor=2.0))
        item = scheduler.create_item("converge", "", now=now)
        assert scheduler.update_after_review(item, 0, now).ease_factor == 2.0


class TestDueItems:
    """Test due-item filtering."""

    def test_filters_by_next_review(self, make_item, now):
        early = make_item("a", created_at=now - 3 * DAY_MS)
        boundary = make_item("b", created_at=now - DAY_MS)
        later = make_item("c", created_at=now)

        assert due_items([early, boundary, later], now) == [early, boundary]

    def test_empty(self, now):
        assert due_items([], now) == []

    def test_nothing_due_at_epoch(self, make_item):
        items = [make_item(str(i)) for i in range(5)]
        assert due_items(items, 0) == []

    def test_everything_due_far_future(self, make_item):
        items = [make_item(str(i)) for i in range(5)]
        assert due_items(items, 2**62) == items

    def test_idempotent_and_accepts_iterables(self, make_item, now):
        items = [make_item("a", created_at=now - 2 * DAY_MS), make_item("b")]
        assert due_items(iter(items), now) == due_items(tuple(items), now) == [items[0]]
        assert len(items) == 2


def _reference_intervals(qualities):
    interval, ease, out = 1, DEFAULT_EASE_FACTOR, []
    for q in qualities:
        ease = expected_ease(ease, q)
        interval = expected_interval(interval, ease, q)
        out.append(interval)
    return out
