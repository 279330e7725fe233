"""JSON file backend — two pretty-printed files in a data directory.

Learn: products.json and queue.json each hold one JSON array that is
rewritten wholesale on every mutation. Writes go to a temp file in the
same directory and are swapped in with os.replace, so a crash mid-write
never leaves a half-written array behind.

File I/O runs in a worker thread (asyncio.to_thread). Each file has its
own asyncio.Lock held across the whole read-modify-write, so two requests
interleaving on the event loop can't clobber each other's update.

Records are validated one at a time. A record that no longer fits the
schema (say, one written by an older version) is skipped on read and
written back untouched by every write that doesn't target it.
"""

import asyncio
import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog
from pydantic import ValidationError as SchemaError

from orderqueue.schemas.product import Product
from orderqueue.schemas.queue import FollowUp, QueueItem
from orderqueue.storage.base import Clock, StorageBackend, StorageError

logger = structlog.get_logger()

PRODUCTS_FILE = "products.json"
QUEUE_FILE = "queue.json"

DEFAULT_SIZES = ["S", "M", "L", "XL", "2XL", "3XL", "4XL"]

# Seeded into products.json the first time the app starts
DEFAULT_PRODUCTS: list[dict[str, Any]] = [
    {
        "name": "Embroidery",
        "sizes": DEFAULT_SIZES,
        "colors": [
            "Mocca-Mocca",
            "Mocca-Black",
            "Black-Mocca",
            "Mocca-Brown",
            "Mocca-Mocca(Floral)",
        ],
    },
    {
        "name": "DTF",
        "sizes": DEFAULT_SIZES,
        "colors": ["White", "Black", "Gray", "Navy", "Red"],
    },
]


def _new_id() -> str:
    return str(uuid.uuid4())


def _record_id(record: Any) -> Optional[str]:
    return record.get("id") if isinstance(record, dict) else None


def _find(records: list[Any], record_id: str) -> Optional[int]:
    for i, record in enumerate(records):
        if _record_id(record) == record_id:
            return i
    return None


def _read_array(path: Path) -> list[Any]:
    """Read one JSON array. A missing file is an empty collection."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        raise StorageError(f"Cannot read {path}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageError(f"Corrupt JSON in {path}: {e}") from e
    if not isinstance(data, list):
        raise StorageError(f"Expected a JSON array in {path}")
    return data


def _write_array(path: Path, data: list[Any]) -> None:
    """Atomically replace a JSON array file (temp file + os.replace)."""
    try:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
    except OSError as e:
        raise StorageError(f"Cannot write {path}: {e}") from e


class JsonFileBackend(StorageBackend):
    """StorageBackend over products.json + queue.json."""

    name = "json-file"
    default_retention = "time-boxed"

    def __init__(self, data_dir: Path | str, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.data_dir = Path(data_dir)
        self.products_path = self.data_dir / PRODUCTS_FILE
        self.queue_path = self.data_dir / QUEUE_FILE
        self._products_lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the data dir and seed missing files."""
        try:
            await asyncio.to_thread(self.data_dir.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create {self.data_dir}: {e}") from e

        if not self.products_path.exists():
            now = self.clock()
            seed = [
                Product(id=_new_id(), created_at=now, updated_at=now, **p).to_document()
                for p in DEFAULT_PRODUCTS
            ]
            await asyncio.to_thread(_write_array, self.products_path, seed)
            logger.info("storage.products_seeded", count=len(seed))

        if not self.queue_path.exists():
            await asyncio.to_thread(_write_array, self.queue_path, [])

        logger.info("storage.json_ready", data_dir=str(self.data_dir))

    # ─── Low-level helpers ───────────────────────────────

    async def _read(self, path: Path) -> list[Any]:
        return await asyncio.to_thread(_read_array, path)

    async def _write(self, path: Path, records: list[Any]) -> None:
        await asyncio.to_thread(_write_array, path, records)

    async def _load(self, path: Path, model: type) -> list:
        """Degraded read: an unreadable file is [], a bad record is skipped."""
        try:
            records = await self._read(path)
        except StorageError as e:
            logger.warning("storage.read_failed", path=str(path), error=str(e))
            return []

        entities = []
        for record in records:
            try:
                entities.append(model.model_validate(record))
            except SchemaError as e:
                logger.warning(
                    "storage.record_skipped",
                    path=str(path),
                    record_id=_record_id(record),
                    error=str(e),
                )
        return entities

    @staticmethod
    def _parse(path: Path, model: type, record: Any):
        """Strict parse of the one record a write is about to change."""
        try:
            return model.model_validate(record)
        except SchemaError as e:
            raise StorageError(
                f"Corrupt entry {_record_id(record)!r} in {path}: {e}"
            ) from e

    async def _remove(self, path: Path, ids: set[str]) -> int:
        """Drop records by id. Caller holds the file's lock."""
        records = await self._read(path)
        remaining = [r for r in records if _record_id(r) not in ids]
        removed = len(records) - len(remaining)
        if removed:
            await self._write(path, remaining)
        return removed

    # ─── Products ────────────────────────────────────────

    async def load_products(self) -> list[Product]:
        return await self._load(self.products_path, Product)

    async def save_product(self, data: dict[str, Any]) -> Product:
        async with self._products_lock:
            records = await self._read(self.products_path)
            now = self.clock()
            product = Product(id=_new_id(), created_at=now, updated_at=now, **data)
            records.append(product.to_document())
            await self._write(self.products_path, records)
        return product

    async def delete_product(self, product_id: str) -> bool:
        async with self._products_lock:
            return await self._remove(self.products_path, {product_id}) == 1

    # ─── Queue ───────────────────────────────────────────

    async def load_queue(self) -> list[QueueItem]:
        return await self._load(self.queue_path, QueueItem)

    async def save_queue_item(self, data: dict[str, Any]) -> QueueItem:
        async with self._queue_lock:
            records = await self._read(self.queue_path)
            now = self.clock()
            item = QueueItem(
                id=_new_id(),
                created_at=now,
                updated_at=now,
                **{**data, "follow_ups": []},
            )
            records.append(item.to_document())
            await self._write(self.queue_path, records)
        return item

    async def update_queue_item_status(
        self, item_id: str, status: str
    ) -> Optional[QueueItem]:
        async with self._queue_lock:
            records = await self._read(self.queue_path)
            i = _find(records, item_id)
            if i is None:
                return None
            # Overwriting the status also repairs a record stored with an unknown one
            item = self._parse(
                self.queue_path,
                QueueItem,
                {**records[i], "status": status, "updatedAt": self.clock()},
            )
            records[i] = item.to_document()
            await self._write(self.queue_path, records)
        return item

    async def append_follow_up(
        self, item_id: str, message: str
    ) -> Optional[QueueItem]:
        async with self._queue_lock:
            records = await self._read(self.queue_path)
            i = _find(records, item_id)
            if i is None:
                return None
            item = self._parse(self.queue_path, QueueItem, records[i])
            now = self.clock()
            follow_up = FollowUp(id=_new_id(), message=message, timestamp=now)
            item = item.model_copy(
                update={
                    "follow_ups": [*(item.follow_ups or []), follow_up],
                    "updated_at": now,
                }
            )
            records[i] = item.to_document()
            await self._write(self.queue_path, records)
        return item

    async def delete_queue_item(self, item_id: str) -> bool:
        return await self.purge_queue_items([item_id]) == 1

    async def purge_queue_items(self, item_ids: Iterable[str]) -> int:
        doomed = set(item_ids)
        if not doomed:
            return 0
        async with self._queue_lock:
            return await self._remove(self.queue_path, doomed)
