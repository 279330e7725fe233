"""Storage backend base — one contract for every persistence variant.

Learn: QueueService never knows where data lives. It talks to a
StorageBackend chosen once at startup (see orderqueue.storage.create_backend)
and passed in by the app factory. Both variants return the same pydantic
entities, so a client can't tell which one is active.

Failure policy shared by all backends:
- Reads (load_*) never raise. Unreadable or corrupt data is logged and an
  empty list is returned — availability wins over read correctness.
- Writes raise StorageError. Every write is durably flushed before the
  call returns, so the next read sees it.

Every write is a read-whole-collection → mutate → write-whole-collection
cycle. Fine for one shop's queue; past a few thousand items this wants
incremental storage instead.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from orderqueue.schemas.product import Product
from orderqueue.schemas.queue import QueueItem

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageError(Exception):
    """Raised when the underlying store can't be read or written."""
    pass


class StorageBackend(ABC):
    """Abstract base for persistence backends."""

    #: Backend identifier reported by /api/health, e.g. "json-file".
    name: str = ""

    #: Retention policy used when configuration doesn't pick one.
    default_retention: str = "time-boxed"

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utcnow

    async def initialize(self) -> None:
        """Prepare the store. Raise StorageError if it's unreachable."""

    async def close(self) -> None:
        """Release connections, file handles, etc."""

    # ─── Products ────────────────────────────────────────

    @abstractmethod
    async def load_products(self) -> list[Product]:
        """All products in insertion order, or [] if unreadable."""

    @abstractmethod
    async def save_product(self, data: dict[str, Any]) -> Product:
        """Assign id + timestamps, persist, return the created product."""

    @abstractmethod
    async def delete_product(self, product_id: str) -> bool:
        """Remove a product. False if it didn't exist."""

    # ─── Queue ───────────────────────────────────────────

    @abstractmethod
    async def load_queue(self) -> list[QueueItem]:
        """All stored queue items (no retention applied), or [] if unreadable."""

    @abstractmethod
    async def save_queue_item(self, data: dict[str, Any]) -> QueueItem:
        """Assign id + timestamps, start with no follow-ups, persist."""

    @abstractmethod
    async def update_queue_item_status(
        self, item_id: str, status: str
    ) -> Optional[QueueItem]:
        """Overwrite status + updatedAt. None (and no write) if unknown."""

    @abstractmethod
    async def append_follow_up(
        self, item_id: str, message: str
    ) -> Optional[QueueItem]:
        """Append a follow-up, refresh updatedAt. None if unknown."""

    @abstractmethod
    async def delete_queue_item(self, item_id: str) -> bool:
        """Remove a queue item. False if it didn't exist."""

    @abstractmethod
    async def purge_queue_items(self, item_ids: Iterable[str]) -> int:
        """Durably remove the given items. Returns how many were removed."""
