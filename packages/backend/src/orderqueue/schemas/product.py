"""Pydantic schemas for products.

- ProductCreate: what you POST (loosely typed; QueueService validates it)
- Product: the stored entity, identical for every storage backend
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import Field

from orderqueue.schemas.common import CamelModel


class ProductCreate(CamelModel):
    """Sizes and colors may arrive as a list or a comma-separated string."""
    name: Optional[str] = None
    sizes: Optional[Union[list[str], str]] = None
    colors: Optional[Union[list[str], str]] = None


class Product(CamelModel):
    id: str
    name: str = Field(..., min_length=1)
    sizes: list[str]
    colors: list[str]
    # Seed data written by older releases carries no timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
