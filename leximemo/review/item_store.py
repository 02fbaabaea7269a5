"""
SQLite Item Store for LexiMemo.

Provides portable persistence for learning items, keyed by id.
The scheduler never touches storage; callers load items from here,
hand them to the scheduler, and save whatever comes back.

Database location: ~/.leximemo/items.db (see config.Settings.db_path)
"""

from __future__ import annotations

import json
import sqlite3
import time
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from .models import InvalidInputError, LearningItem

# =============================================================================
# Repository Port
# =============================================================================


class ItemNotFoundError(LookupError):
    """Raised when no learning item exists for an id."""

    def __init__(self, item_id: str):
        super().__init__(f"Learning item not found: {item_id}")
        self.item_id = item_id


class ItemRepository(ABC):
    """
    Port for loading and saving learning items.

    Implementations:
        - ItemStore: Local SQLite database.
    """

    @abstractmethod
    def get_all(self) -> list[LearningItem]:
        """Return every stored item."""

    @abstractmethod
    def get(self, item_id: str) -> LearningItem:
        """Return one item or raise ItemNotFoundError."""

    @abstractmethod
    def save(self, item: LearningItem) -> None:
        """Insert or replace an item by id."""

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        """Delete an item. Returns False when the id was unknown."""


# =============================================================================
# Item Store
# =============================================================================

_COLUMNS = (
    "id",
    "item_type",
    "content",
    "translation",
    "context",
    "source_url",
    "source_title",
    "created_at",
    "last_reviewed_at",
    "next_review_at",
    "interval_days",
    "ease_factor",
    "user_id",
)

# Largest value an SQLite INTEGER column holds
SQLITE_MAX_INTEGER = 2**63 - 1


class ItemStore(ItemRepository):
    """
    SQLite-backed persistence for learning items.

    Handles:
    - One row per item (scheduling state included)
    - Upserts on save so review results replace the previous state
    - JSON export/import of the whole collection
    """

    DEFAULT_DB_PATH = Path.home() / ".leximemo" / "items.db"

    def __init__(self, db_path: Path | str | None = None):
        """
        Initialize the item store.

        Args:
            db_path: Custom database path (defaults to ~/.leximemo/items.db)
        """
        self.db_path = Path(db_path) if db_path is not None else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"ItemStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS learning_items (
                id TEXT PRIMARY KEY,
                item_type TEXT NOT NULL DEFAULT 'word',
                content TEXT NOT NULL,
                translation TEXT NOT NULL DEFAULT '',
                context TEXT,
                source_url TEXT,
                source_title TEXT,
                created_at INTEGER NOT NULL,
                last_reviewed_at INTEGER NOT NULL DEFAULT 0,
                next_review_at INTEGER NOT NULL,
                interval_days INTEGER NOT NULL DEFAULT 1,
                ease_factor REAL NOT NULL DEFAULT 2.5,
                user_id TEXT NOT NULL DEFAULT 'local'
            )
        """)

        # Index for fast due-date queries
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_items_next_review
            ON learning_items(next_review_at)
        """)

        self.conn.commit()

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> LearningItem:
        return LearningItem(
            id=row["id"],
            item_type=row["item_type"],
            content=row["content"],
            translation=row["translation"],
            context=row["context"],
            source_url=row["source_url"],
            source_title=row["source_title"],
            created_at=row["created_at"],
            last_reviewed_at=row["last_reviewed_at"],
            next_review_at=row["next_review_at"],
            interval=row["interval_days"],
            ease_factor=row["ease_factor"],
            user_id=row["user_id"],
        )

    @staticmethod
    def _item_to_row(item: LearningItem) -> tuple:
        for name in ("created_at", "last_reviewed_at", "next_review_at", "interval"):
            if getattr(item, name) > SQLITE_MAX_INTEGER:
                raise InvalidInputError(
                    f"Item {item.id}: {name} is too large to store ({getattr(item, name)})"
                )
        return (
            item.id,
            item.item_type.value,
            item.content,
            item.translation,
            item.context,
            item.source_url,
            item.source_title,
            item.created_at,
            item.last_reviewed_at,
            item.next_review_at,
            item.interval,
            item.ease_factor,
            item.user_id,
        )

    # =========================================================================
    # Item Operations
    # =========================================================================

    def get_all(self) -> list[LearningItem]:
        """Get every item, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM learning_items ORDER BY created_at ASC, id ASC")
        return [self._row_to_item(row) for row in cursor.fetchall()]

    def get(self, item_id: str) -> LearningItem:
        """
        Get one item by id.

        Raises:
            ItemNotFoundError: If no item has this id
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM learning_items WHERE id = ?", (item_id,))
        row = cursor.fetchone()

        if row is None:
            raise ItemNotFoundError(item_id)

        return self._row_to_item(row)

    def save(self, item: LearningItem) -> None:
        """
        Save or update an item.

        Args:
            item: LearningItem to persist

        Raises:
            InvalidInputError: If a timestamp or interval exceeds the INTEGER range
        """
        self._upsert([item])
        self.conn.commit()
        logger.debug(f"Saved item {item.id} (next review at {item.next_review_at})")

    def _upsert(self, items: list[LearningItem]) -> None:
        placeholders = ", ".join("?" for _ in _COLUMNS)
        updates = ",\n                ".join(f"{col} = excluded.{col}" for col in _COLUMNS[1:])
        self.conn.executemany(
            f"""
            INSERT INTO learning_items ({", ".join(_COLUMNS)})
            VALUES ({placeholders})
            ON CONFLICT(id) DO UPDATE SET
                {updates}
            """,
            [self._item_to_row(item) for item in items],
        )

    def delete(self, item_id: str) -> bool:
        """Delete an item. Returns True if a row was removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM learning_items WHERE id = ?", (item_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def count(self) -> int:
        """Count stored items."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) AS cnt FROM learning_items")
        return cursor.fetchone()["cnt"]

    def clear(self) -> int:
        """Delete every item. Returns the number of rows removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM learning_items")
        self.conn.commit()
        return cursor.rowcount

    # =========================================================================
    # Export / Import
    # =========================================================================

    def export_json(self, path: Path | str) -> int:
        """
        Export all items to a JSON file.

        Returns:
            Number of items written
        """
        items = self.get_all()
        payload = {
            "exportedAt": int(time.time() * 1000),
            "learningItems": [item.to_dict() for item in items],
        }
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        logger.info(f"Exported {len(items)} items to {path}")
        return len(items)

    def import_json(self, path: Path | str) -> int:
        """
        Import items from a JSON export, replacing items with the same id.

        The whole file is validated before anything is written.

        Returns:
            Number of items imported
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)

        records = payload.get("learningItems") if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise InvalidInputError(f"{path} does not contain a learningItems list")

        items = [LearningItem.from_dict(record) for record in records]
        with self.conn:
            self._upsert(items)

        logger.info(f"Imported {len(items)} items from {path}")
        return len(items)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> ItemStore:
        return self

    def __exit__(self, *args) -> None:
        self.close()
