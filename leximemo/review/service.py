"""
Review Service: orchestration around the pure scheduler.

Owns the read-modify-persist cycle:
1. Load the item from the repository
2. Ask the scheduler for the next state
3. Save the returned item

Callers sharing one store must serialize submit_review per item;
the last write wins.
"""

from __future__ import annotations

from loguru import logger

from config import Settings, get_settings

from .item_store import ItemNotFoundError, ItemRepository
from .models import ItemType, LearningItem, ReviewStatistics, coerce_item_type
from .scheduler import SM2Scheduler
from .statistics import review_statistics


class ReviewService:
    """
    Application service for adding, reviewing and inspecting items.

    Key principles:
    1. The scheduler stays pure; all persistence happens here
    2. ``now`` is always supplied by the caller
    3. Unknown ids raise ItemNotFoundError
    """

    def __init__(
        self,
        store: ItemRepository,
        scheduler: SM2Scheduler | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the service.

        Args:
            store: Repository holding the item collection
            scheduler: SM2Scheduler (creates default if None)
            settings: Application settings (cached settings if None)
        """
        self.store = store
        self.scheduler = scheduler or SM2Scheduler()
        self.settings = settings or get_settings()

    def add_item(
        self,
        content: str,
        translation: str = "",
        item_type: ItemType | str = ItemType.WORD,
        context: str | None = None,
        *,
        now: int,
        source_url: str | None = None,
        source_title: str | None = None,
    ) -> LearningItem:
        """Create an item for the configured user and persist it."""
        item = self.scheduler.create_item(
            content,
            translation,
            item_type,
            context,
            self.settings.default_user_id,
            now=now,
            source_url=source_url,
            source_title=source_title,
        )
        self.store.save(item)
        logger.debug(f"Added {item.item_type.value} {item.id}: {item.content!r}")
        return item

    def review_queue(self, now: int, limit: int | None = None) -> list[LearningItem]:
        """
        Build the list of items to review now.

        Most overdue items come first. ``limit`` overrides the configured
        daily limit; a limit of 0 means unlimited.
        """
        due = self.scheduler.due_items(self.store.get_all(), now)
        due.sort(key=lambda item: (item.next_review_at, item.created_at))

        cap = self.settings.daily_review_limit if limit is None else limit
        if cap:
            due = due[:cap]

        logger.debug(f"Review queue at {now}: {len(due)} items")
        return due

    def submit_review(self, item_id: str, quality: int, now: int) -> LearningItem:
        """
        Record a review and update scheduling state.

        Args:
            item_id: The reviewed item
            quality: SM-2 quality (0-5)
            now: Review time in ms since epoch

        Returns:
            Updated LearningItem
        """
        current = self.store.get(item_id)
        updated = self.scheduler.update_after_review(current, quality, now)
        self.store.save(updated)

        logger.info(
            f"Recorded review for {item_id}: quality={quality}, "
            f"interval={updated.interval}d, ease={updated.ease_factor:.2f}"
        )
        return updated

    def statistics(self, now: int) -> ReviewStatistics:
        """Compute statistics over the stored collection."""
        return review_statistics(self.store.get_all(), now, self.settings.get_tzinfo())

    def search(self, term: str = "", item_type: ItemType | str | None = None) -> list[LearningItem]:
        """
        Find items whose content or translation contains ``term``.

        Matching is case-insensitive; results are newest first.
        """
        wanted_type = coerce_item_type(item_type) if item_type else None
        needle = term.lower()

        matches = [
            item
            for item in self.store.get_all()
            if (needle in item.content.lower() or needle in item.translation.lower())
            and (wanted_type is None or item.item_type == wanted_type)
        ]
        matches.sort(key=lambda item: item.created_at, reverse=True)
        return matches

    def remove_item(self, item_id: str) -> None:
        """Delete an item, raising ItemNotFoundError if it does not exist."""
        if not self.store.delete(item_id):
            raise ItemNotFoundError(item_id)
        logger.debug(f"Removed item {item_id}")
