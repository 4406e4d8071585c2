# marketplace/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Order placed by a buyer against a single seller's listings.

    Status is tracked on two independent axes:
      - lifecycle_status: pending | processing | shipped | delivered | cancelled
      - is_paid / is_delivered: one-way flags with their timestamps

    Neither axis is derived from the other.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    buyer_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )
    seller_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # Shipping address
    shipping_full_name: str
    shipping_address: str
    shipping_city: str
    shipping_postal_code: str
    shipping_country: str
    shipping_port: str

    # CARD | NET_BANKING | UPI | WALLET
    payment_method: str

    # Money fields as submitted or quoted by the pricing policy
    items_price: float = Field(default=0.0, ge=0)
    tax_price: float = Field(default=0.0, ge=0)
    shipping_price: float = Field(default=0.0, ge=0)
    total_price: float = Field(default=0.0, ge=0)
    currency: str = Field(default="INR", max_length=3)

    lifecycle_status: str = Field(
        default="pending",
        index=True,
    )

    is_paid: bool = Field(default=False)
    paid_at: datetime | None = None

    # Payment confirmation captured verbatim from the payment provider
    payment_result_id: str | None = None
    payment_result_status: str | None = None
    payment_result_update_time: str | None = None
    payment_result_email: str | None = None

    is_delivered: bool = Field(default=False)
    delivered_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last mutation timestamp (UTC)",
    )

    def touch(self) -> None:
        self.updated_at = utcnow()


class OrderItem(SQLModel, table=True):
    """
    Snapshot of a purchased line.

    Name and unit price are frozen at purchase time and never
    resynced with later catalog edits.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    # Position in the submitted cart (0-based)
    line_no: int = Field(default=0, ge=0)

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    name: str

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: float = Field(
        ge=0,
        description="Unit price at time of order",
    )

    image_url: str | None = None
