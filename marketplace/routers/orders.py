# marketplace/routers/orders.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from marketplace.core.auth import require_admin, require_auth, require_roles, require_seller
from marketplace.core.config import get_settings
from marketplace.database import get_session
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.schemas.common import Envelope
from marketplace.schemas.order import (
    LifecycleStatusUpdate,
    OrderAdminRead,
    OrderCreate,
    OrderDetailRead,
    OrderRead,
    PaymentConfirmationCreate,
)
from marketplace.schemas.user import CurrentUser
from marketplace.services.order_service import OrderService
from marketplace.services.pricing import get_pricing_policy

settings = get_settings()

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
user_repo = UserRepository()
service = OrderService(
    order_repo,
    product_repo,
    user_repo,
    pricing=get_pricing_policy(settings.PRICING_POLICY),
    default_currency=settings.DEFAULT_CURRENCY,
    pay_requires_access=settings.ORDER_PAY_REQUIRES_ACCESS,
)


# -------- Buyer-facing endpoints --------


@router.post(
    "",
    response_model=Envelope[OrderRead],
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """
    Place an order from the client-side cart.

    Auth:
      - Any authenticated user; the caller becomes the buyer.
    """
    order = service.create_order(session, current_user, payload)
    return Envelope(data=order, message="Order created successfully")


@router.get("/myorders", response_model=Envelope[list[OrderRead]])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """
    Orders placed by the authenticated user, newest first.
    """
    return Envelope(data=service.list_buyer_orders(session, current_user))


@router.get("/mysellerorders", response_model=Envelope[list[OrderRead]])
def list_my_seller_orders(
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_seller),
):
    """
    Orders received by the authenticated seller, newest first.
    """
    return Envelope(data=service.list_seller_orders(session, current_user))


# -------- Admin endpoints --------


@router.get("", response_model=Envelope[list[OrderAdminRead]])
def list_all_orders(
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_admin),
):
    """
    List all orders (admin only). Buyer/seller reduced to id and name.
    """
    return Envelope(data=service.list_all_orders(session, current_user))


@router.patch("/{order_id}/status", response_model=Envelope[OrderRead])
def update_lifecycle_status(
    order_id: str,
    payload: LifecycleStatusUpdate,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_admin),
):
    """
    Move the lifecycle status (admin only).

      pending    -> processing, cancelled

      processing -> shipped, cancelled

      shipped    -> delivered
    """
    order = service.update_lifecycle_status(session, current_user, order_id, payload)
    return Envelope(data=order, message="Order status updated")


# -------- Single order --------


@router.get("/{order_id}", response_model=Envelope[OrderDetailRead])
def get_order(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """
    Get one order with buyer and seller resolved.

    Auth:
      - The order's buyer, its seller, or an admin.
    """
    return Envelope(data=service.get_order(session, current_user, order_id))


@router.put("/{order_id}/pay", response_model=Envelope[OrderRead])
def pay_order(
    order_id: str,
    payload: PaymentConfirmationCreate,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """
    Record the payment provider's confirmation for an order.
    """
    order = service.mark_paid(session, current_user, order_id, payload)
    return Envelope(data=order, message="Order updated to paid")


@router.put("/{order_id}/deliver", response_model=Envelope[OrderRead])
def deliver_order(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_roles("seller", "admin")),
):
    """
    Confirm delivery.

    Auth:
      - The order's seller, or an admin.
    """
    order = service.mark_delivered(session, current_user, order_id)
    return Envelope(data=order, message="Order updated to delivered")
