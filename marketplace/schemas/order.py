# marketplace/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from marketplace.schemas.common import CamelModel
from marketplace.schemas.user import UserPublic, UserSummary

PaymentMethod = Literal["CARD", "NET_BANKING", "UPI", "WALLET"]
Currency = Literal["INR", "USD", "EUR", "GBP", "AED"]
LifecycleStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


# -------- Requests --------


class ShippingAddress(CamelModel):
    """
    Structured delivery address. Every field is required.
    """

    full_name: str
    address: str
    city: str
    postal_code: str
    country: str
    port: str

    @field_validator("full_name", "address", "city", "postal_code", "country", "port")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderItemCreate(CamelModel):
    """
    A cart line as submitted by the client.

    - product: catalog id of the ordered listing
    - name/price/image: client snapshot; name falls back to the catalog
    - seller: optional, must agree with the catalog owner if present
    """

    product: str
    name: str | None = None
    quantity: int = Field(ge=1)
    price: float | None = Field(default=None, ge=0)
    image: str | None = None
    seller: str | None = None


class OrderCreate(CamelModel):
    """
    Payload for placing an order from the client-side cart.

    `items` may be empty here; an empty order is rejected by the
    service so the caller gets "No order items" rather than a
    schema error. The SPA's legacy `orderItems` key is accepted.

    Backend derives:
      - buyer from the token
      - seller from the catalog owner of the ordered products
      - lifecycle_status = 'pending'
    """

    items: list[OrderItemCreate] = Field(
        default_factory=list,
        validation_alias=AliasChoices("items", "orderItems"),
    )
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items_price: float = Field(default=0.0, ge=0)
    tax_price: float = Field(default=0.0, ge=0)
    shipping_price: float = Field(default=0.0, ge=0)
    total_price: float = Field(default=0.0, ge=0)
    currency: Currency | None = None


class PayerInfo(BaseModel):
    email_address: str | None = None


class PaymentConfirmationCreate(BaseModel):
    """
    Confirmation payload forwarded by the client from the payment
    provider. Keys follow the provider's format and are stored verbatim.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    status: str | None = None
    update_time: str | None = None
    payer: PayerInfo | None = None


class LifecycleStatusUpdate(CamelModel):
    """
    Admin payload to move the lifecycle status.
    """

    model_config = ConfigDict(extra="forbid")

    status: LifecycleStatus


# -------- Responses --------


class PaymentConfirmationRead(CamelModel):
    id: str | None
    status: str | None
    update_time: str | None
    payer_email: str | None


class OrderItemRead(CamelModel):
    """
    Snapshot of a purchased line.
    """

    product: uuid.UUID
    name: str
    quantity: int
    unit_price: float
    image: str | None
    line_total: float


class OrderBase(CamelModel):
    """
    Fields shared by every order view. Subclasses decide how the
    buyer and seller are rendered.
    """

    id: uuid.UUID
    items: list[OrderItemRead]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    currency: str
    lifecycle_status: LifecycleStatus
    is_paid: bool
    paid_at: datetime | None
    payment_confirmation: PaymentConfirmationRead | None
    is_delivered: bool
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime


class OrderRead(OrderBase):
    """Order with buyer/seller as raw ids (create, pay, deliver, own lists)."""

    buyer: uuid.UUID
    seller: uuid.UUID


class OrderDetailRead(OrderBase):
    """Single-order view with buyer/seller resolved to a public profile."""

    buyer: UserPublic | None
    seller: UserPublic | None


class OrderAdminRead(OrderBase):
    """Admin triage view: buyer/seller reduced to id and name."""

    buyer: UserSummary | None
    seller: UserSummary | None
