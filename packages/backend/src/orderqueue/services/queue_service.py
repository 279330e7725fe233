"""Queue service — the order queue's business rules.

Learn: This is the CORE of the app. Every operation is:
1. Validated here (required fields, known statuses) — bad input never
   reaches storage
2. Applied through the StorageBackend (one durable read-modify-write)
3. Broadcast to every connected screen, as a targeted event plus a full
   queue snapshot so listeners can use whichever they prefer

Reads apply the retention policy (see services/retention.py) every time.

Status changes are unrestricted on purpose: a done order can go back to
pending and then to done again. There is no VALID_TRANSITIONS table.
"""

from typing import Any, Optional

import structlog

from orderqueue.events.types import (
    FOLLOW_UP_ADDED,
    NEW_QUEUE_ITEM,
    PRODUCTS_UPDATED,
    QUEUE_ITEM_DELETED,
    QUEUE_UPDATED,
    STATUS_UPDATED,
)
from orderqueue.realtime.broadcaster import Broadcaster
from orderqueue.schemas.product import Product
from orderqueue.schemas.queue import QUEUE_STATUSES, QueueItem
from orderqueue.services.retention import RetentionPolicy, build_policy
from orderqueue.storage.base import Clock, StorageBackend, StorageError, utcnow

logger = structlog.get_logger()


class ValidationError(Exception):
    """Raised when a request is missing a required field or has a bad value."""
    pass


class NotFoundError(Exception):
    """Raised when the referenced queue item doesn't exist."""
    pass


# ═══════════════════════════════════════════════════════════
# Input normalization
# ═══════════════════════════════════════════════════════════


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _string_list(value: Any) -> list[str]:
    """Accept ["S", "M"] or "S, M" — the admin form sends the latter."""
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    return [s.strip() for s in value if isinstance(s, str) and s.strip()]


def _quantity(value: Any) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError("Quantity must be a whole number")
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return quantity


def _status(value: Any) -> str:
    if value not in QUEUE_STATUSES:
        raise ValidationError(
            f"Invalid status {value!r}. Must be one of: {', '.join(QUEUE_STATUSES)}"
        )
    return value


# ═══════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════


class QueueService:
    """Queue items + products over a StorageBackend, with live broadcast."""

    def __init__(
        self,
        backend: StorageBackend,
        retention: Optional[RetentionPolicy] = None,
        broadcaster: Optional[Broadcaster] = None,
        clock: Optional[Clock] = None,
    ):
        self.backend = backend
        self.retention = retention or build_policy(backend.default_retention)
        self.broadcaster = broadcaster or Broadcaster()
        self.clock = clock or utcnow

    # ─── Queue: read ─────────────────────────────────────

    async def get_queue(self) -> list[QueueItem]:
        """All visible queue items, after the retention policy.

        Learn: Expired items are purged as a side effect of reading. A
        failed purge is logged and the read still succeeds — the item just
        gets purged by a later read.
        """
        items = await self.backend.load_queue()
        visible, expired = self.retention.partition(items, self.clock())
        if expired and self.retention.purges:
            try:
                removed = await self.backend.purge_queue_items(i.id for i in expired)
                logger.info("queue.expired_purged", count=removed, policy=self.retention.name)
            except StorageError as e:
                logger.warning("queue.purge_failed", count=len(expired), error=str(e))
        return visible

    async def snapshot(self) -> list[dict]:
        return [item.to_document() for item in await self.get_queue()]

    async def _publish_queue(self, event_type: str, data: Any) -> None:
        await self.broadcaster.publish(event_type, data)
        await self.broadcaster.publish(QUEUE_UPDATED, await self.snapshot())

    # ─── Queue: write ────────────────────────────────────

    async def add_queue_item(self, data: dict[str, Any]) -> QueueItem:
        """Create a queue item in 'pending' status (unless one is given).

        Accepts camelCase or snake_case keys, as sent by the API.
        """
        def field(name: str, alias: str) -> Any:
            return data.get(name, data.get(alias))

        product_name = _text(field("product_name", "productName"))
        size = _text(data.get("size"))
        courier = _text(data.get("courier"))
        raw_quantity = data.get("quantity")
        if not product_name or not size or raw_quantity in (None, "") or not courier:
            raise ValidationError(
                "Product name, size, quantity, and courier are required"
            )

        status = data.get("status")
        record = {
            "product_id": field("product_id", "productId") or None,
            "product_name": product_name,
            "size": size,
            "color": _text(data.get("color")),
            "quantity": _quantity(raw_quantity),
            "courier": courier,
            "notes": _text(data.get("notes")),
            "status": _status(status) if status else "pending",
        }

        item = await self.backend.save_queue_item(record)
        logger.info("queue.item_added", item_id=item.id, product=item.product_name)
        await self._publish_queue(NEW_QUEUE_ITEM, item.to_document())
        return item

    async def update_queue_item_status(self, item_id: str, status: Any) -> QueueItem:
        """Overwrite an item's status. Any status may follow any other."""
        status = _status(status)
        item = await self.backend.update_queue_item_status(item_id, status)
        if item is None:
            raise NotFoundError("Queue item not found")

        logger.info("queue.status_changed", item_id=item_id, status=status)
        await self._publish_queue(
            STATUS_UPDATED,
            {
                "id": item.id,
                "status": item.status,
                "updatedAt": item.to_document()["updatedAt"],
            },
        )
        return item

    async def add_follow_up(self, item_id: str, message: Any) -> QueueItem:
        """Append a follow-up note. Returns the whole parent item."""
        message = _text(message)
        if not message:
            raise ValidationError("Message is required")

        item = await self.backend.append_follow_up(item_id, message)
        if item is None:
            raise NotFoundError("Queue item not found")

        follow_up = item.follow_ups[-1]
        logger.info("queue.follow_up_added", item_id=item_id, follow_up_id=follow_up.id)
        await self._publish_queue(
            FOLLOW_UP_ADDED, {"id": item.id, "followUp": follow_up.to_document()}
        )
        return item

    async def delete_queue_item(self, item_id: str) -> bool:
        """Remove an item. False (not an error) if it was already gone."""
        deleted = await self.backend.delete_queue_item(item_id)
        if deleted:
            logger.info("queue.item_deleted", item_id=item_id)
            await self._publish_queue(QUEUE_ITEM_DELETED, {"id": item_id})
        return deleted

    # ─── Products ────────────────────────────────────────

    async def get_products(self) -> list[Product]:
        return await self.backend.load_products()

    async def _publish_products(self) -> None:
        products = await self.backend.load_products()
        await self.broadcaster.publish(
            PRODUCTS_UPDATED, [p.to_document() for p in products]
        )

    async def add_product(self, data: dict[str, Any]) -> Product:
        name = _text(data.get("name"))
        sizes = _string_list(data.get("sizes"))
        colors = _string_list(data.get("colors"))
        if not name or not sizes or not colors:
            raise ValidationError("Name, sizes, and colors are required")

        product = await self.backend.save_product(
            {"name": name, "sizes": sizes, "colors": colors}
        )
        logger.info("product.added", product_id=product.id, name=name)
        await self._publish_products()
        return product

    async def delete_product(self, product_id: str) -> bool:
        deleted = await self.backend.delete_product(product_id)
        if deleted:
            logger.info("product.deleted", product_id=product_id)
            await self._publish_products()
        return deleted
