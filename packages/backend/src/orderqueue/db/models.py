"""SQLAlchemy ORM models — one table per document collection.

Learn: The document store keeps each entity as a JSON document (JSONB on
PostgreSQL, plain JSON elsewhere) keyed by a native `_id` column. Besides the
body, each row only has:
- `_id`: the object id (24 hex chars, generated here, not by the DB)
- `created_at`: insertion order for listing

Retention filters in Python over the whole collection, so nothing else
is lifted out of the document.

The document body never contains the id; DocumentStoreBackend adds it
back as `id` when it hands entities to the rest of the app.
"""

import os
import time
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

Document = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_object_id() -> str:
    """Mongo-style object id: 4-byte timestamp + 8 random bytes, hex."""
    return f"{int(time.time()):08x}{os.urandom(8).hex()}"


class ProductDocument(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column("_id", String(24), primary_key=True, default=new_object_id)
    body: Mapped[dict] = mapped_column(Document, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class QueueItemDocument(Base):
    __tablename__ = "queue_items"

    id: Mapped[str] = mapped_column("_id", String(24), primary_key=True, default=new_object_id)
    body: Mapped[dict] = mapped_column(Document, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
