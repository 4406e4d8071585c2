# marketplace/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry for a port / logistics service.

    Owned by the catalog; the order engine reads name, price, stock and
    seller, and writes decremented stock when an order is placed.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
    )

    price: float = Field(
        ge=0,
        description="Unit price in `currency`",
    )

    currency: str = Field(default="INR", max_length=3)

    stock: int = Field(
        default=0,
        ge=0,
        description="Units currently available; never negative",
    )

    seller_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
        description="Seller who owns this listing",
    )

    is_active: bool = Field(default=True, index=True)

    image_url: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
