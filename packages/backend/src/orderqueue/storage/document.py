"""Document store backend — JSON documents in a SQL database via SQLAlchemy.

Learn: Each product / queue item is one row holding a JSON document.
The native key is `_id`; the rest of the app only ever sees `id`, so
`_to_entity` / `_to_body` translate at this boundary and nowhere else.

Each operation runs in its own session and commits before returning —
that commit is the durable flush QueueService relies on.
"""

from typing import Any, Iterable, Optional

import structlog
from pydantic import ValidationError as SchemaError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import flag_modified

from orderqueue.db.engine import build_engine, build_session_factory
from orderqueue.db.models import Base, ProductDocument, QueueItemDocument, new_object_id
from orderqueue.schemas.product import Product
from orderqueue.schemas.queue import FollowUp, QueueItem
from orderqueue.storage.base import Clock, StorageBackend, StorageError

logger = structlog.get_logger()


def _to_body(entity) -> dict[str, Any]:
    body = entity.to_document()
    body.pop("id", None)
    return body


def _to_entity(model: type, row) -> Any:
    return model.model_validate({**row.body, "id": row.id})


class DocumentStoreBackend(StorageBackend):
    """StorageBackend over a document table per collection."""

    name = "document-store"
    default_retention = "hide-done"

    def __init__(
        self,
        database_url: str,
        clock: Optional[Clock] = None,
        echo: bool = False,
    ):
        super().__init__(clock)
        self.database_url = database_url
        self.engine = build_engine(database_url, echo=echo)
        self.sessions = build_session_factory(self.engine)

    async def initialize(self) -> None:
        """Connect and create the collections if they don't exist yet."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Document store unreachable: {e}") from e
        logger.info("storage.document_store_ready")

    async def close(self) -> None:
        await self.engine.dispose()

    # ─── Low-level helpers ───────────────────────────────

    async def _load(self, document: type, model: type) -> list:
        try:
            async with self.sessions() as session:
                result = await session.execute(
                    select(document).order_by(document.created_at)
                )
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                "storage.read_failed", collection=document.__tablename__, error=str(e)
            )
            return []

        entities = []
        for row in rows:
            try:
                entities.append(_to_entity(model, row))
            except SchemaError as e:
                logger.warning(
                    "storage.record_skipped",
                    collection=document.__tablename__,
                    record_id=row.id,
                    error=str(e),
                )
        return entities

    async def _delete(self, document: type, ids: set[str]) -> int:
        if not ids:
            return 0
        try:
            async with self.sessions() as session:
                result = await session.execute(
                    delete(document).where(document.id.in_(ids))
                )
                await session.commit()
                return result.rowcount or 0
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Delete from {document.__tablename__} failed: {e}") from e

    # ─── Products ────────────────────────────────────────

    async def load_products(self) -> list[Product]:
        return await self._load(ProductDocument, Product)

    async def save_product(self, data: dict[str, Any]) -> Product:
        now = self.clock()
        product = Product(id=new_object_id(), created_at=now, updated_at=now, **data)
        try:
            async with self.sessions() as session:
                session.add(
                    ProductDocument(id=product.id, body=_to_body(product), created_at=now)
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Insert product failed: {e}") from e
        return product

    async def delete_product(self, product_id: str) -> bool:
        return await self._delete(ProductDocument, {product_id}) == 1

    # ─── Queue ───────────────────────────────────────────

    async def load_queue(self) -> list[QueueItem]:
        return await self._load(QueueItemDocument, QueueItem)

    async def save_queue_item(self, data: dict[str, Any]) -> QueueItem:
        now = self.clock()
        item = QueueItem(
            id=new_object_id(),
            created_at=now,
            updated_at=now,
            **{**data, "follow_ups": []},
        )
        try:
            async with self.sessions() as session:
                session.add(
                    QueueItemDocument(
                        id=item.id,
                        body=_to_body(item),
                        created_at=now,
                    )
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Insert queue item failed: {e}") from e
        return item

    async def _mutate_item(self, item_id: str, mutate) -> Optional[QueueItem]:
        """Load one document, apply `mutate(item) -> item`, write it back."""
        try:
            async with self.sessions() as session:
                row = await session.get(QueueItemDocument, item_id)
                if row is None:
                    return None
                item = mutate(_to_entity(QueueItem, row))
                row.body = _to_body(item)
                flag_modified(row, "body")
                await session.commit()
                return item
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Update queue item {item_id} failed: {e}") from e
        except SchemaError as e:
            raise StorageError(f"Corrupt queue item {item_id}: {e}") from e

    async def update_queue_item_status(
        self, item_id: str, status: str
    ) -> Optional[QueueItem]:
        def apply(item: QueueItem) -> QueueItem:
            return QueueItem.model_validate(
                {**item.model_dump(), "status": status, "updated_at": self.clock()}
            )

        return await self._mutate_item(item_id, apply)

    async def append_follow_up(
        self, item_id: str, message: str
    ) -> Optional[QueueItem]:
        def apply(item: QueueItem) -> QueueItem:
            now = self.clock()
            follow_up = FollowUp(id=new_object_id(), message=message, timestamp=now)
            return item.model_copy(
                update={
                    "follow_ups": [*(item.follow_ups or []), follow_up],
                    "updated_at": now,
                }
            )

        return await self._mutate_item(item_id, apply)

    async def delete_queue_item(self, item_id: str) -> bool:
        return await self._delete(QueueItemDocument, {item_id}) == 1

    async def purge_queue_items(self, item_ids: Iterable[str]) -> int:
        return await self._delete(QueueItemDocument, set(item_ids))
