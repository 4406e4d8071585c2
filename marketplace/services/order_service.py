# marketplace/services/order_service.py
import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from marketplace.core import policy
from marketplace.core.errors import (
    EmptyOrder,
    Forbidden,
    InsufficientStock,
    InvalidStatusTransition,
    MixedSellerOrder,
    OrderNotFound,
    ProductNotFound,
    SellerMismatch,
    StorageError,
)
from marketplace.models.order import Order, OrderItem, utcnow
from marketplace.models.user import User
from marketplace.repositories.order_repo import OrderRepository
from marketplace.repositories.product_repo import ProductRepository
from marketplace.repositories.user_repo import UserRepository
from marketplace.schemas.order import (
    LifecycleStatusUpdate,
    OrderAdminRead,
    OrderCreate,
    OrderDetailRead,
    OrderItemRead,
    OrderRead,
    PaymentConfirmationCreate,
    PaymentConfirmationRead,
    ShippingAddress,
)
from marketplace.schemas.user import CurrentUser, UserPublic, UserSummary
from marketplace.services.pricing import ClientSubmittedPricing, PricedLine, PricingPolicy

logger = logging.getLogger(__name__)

# Manual lifecycle moves (admin only). This track is independent of
# is_paid / is_delivered and is never advanced by pay or deliver.
LIFECYCLE_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}


def _parse_id(raw: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Validate a cart against the catalog (existence, stock, seller)
      - Snapshot lines and persist the order
      - Take stock with an atomic conditional decrement, in the same
        transaction as the order insert
      - Payment and delivery confirmation
      - Authorization through marketplace.core.policy
      - Buyer / seller / admin listings

    The caller is always passed in explicitly as a CurrentUser.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
        pricing: PricingPolicy | None = None,
        default_currency: str = "INR",
        pay_requires_access: bool = False,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.user_repo = user_repo
        self.pricing = pricing or ClientSubmittedPricing()
        self.default_currency = default_currency
        self.pay_requires_access = pay_requires_access

    # -------- Creation --------

    def create_order(
        self,
        session: Session,
        current_user: CurrentUser,
        payload: OrderCreate,
    ) -> OrderRead:
        """
        Place an order for the current user.

        Steps:
          1. Reject an empty cart.
          2. In line order: product must exist and have enough stock
             for everything requested of it so far. The first failing
             line aborts; nothing is written yet.
          3. Derive the seller from the catalog; one seller per order.
          4. Price the order through the pricing policy.
          5. Insert Order + OrderItem snapshot rows.
          6. Decrement stock per line (conditional UPDATE). If any line
             lost the race, roll back everything and report the stock
             that is actually left.
          7. Commit once and return the stored order.
        """
        if not payload.items:
            raise EmptyOrder()

        # 2) Validate every line before anything is mutated.
        # A product listed on several lines is checked against the
        # quantity requested so far across all of them.
        lines: list[PricedLine] = []
        requested: dict[uuid.UUID, int] = {}
        for line in payload.items:
            product_id = _parse_id(line.product)
            product = self.product_repo.get_by_id(session, product_id) if product_id else None
            if product is None:
                raise ProductNotFound(line.product)

            requested[product.id] = requested.get(product.id, 0) + line.quantity
            if product.stock < requested[product.id]:
                logger.info(
                    "Rejected order for %s: %s requested, %s available",
                    product.id,
                    requested[product.id],
                    product.stock,
                )
                raise InsufficientStock(product.name, product.stock, requested[product.id])

            lines.append(
                PricedLine(
                    line=line,
                    product=product,
                    unit_price=self.pricing.unit_price(line, product),
                )
            )

        # 3) Seller
        seller_id = self._resolve_seller(lines)

        # 4) Pricing
        quote = self.pricing.quote(payload, lines)

        address = payload.shipping_address
        order = Order(
            buyer_id=current_user.id,
            seller_id=seller_id,
            shipping_full_name=address.full_name,
            shipping_address=address.address,
            shipping_city=address.city,
            shipping_postal_code=address.postal_code,
            shipping_country=address.country,
            shipping_port=address.port,
            payment_method=payload.payment_method,
            items_price=quote.items_price,
            tax_price=quote.tax_price,
            shipping_price=quote.shipping_price,
            total_price=quote.total_price,
            currency=payload.currency or self.default_currency,
            lifecycle_status="pending",
        )

        try:
            # 5) Order + snapshot lines
            order = self.order_repo.create_order(session, order)
            self.order_repo.create_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        line_no=line_no,
                        product_id=pl.product.id,
                        name=pl.line.name or pl.product.name,
                        quantity=pl.line.quantity,
                        unit_price=pl.unit_price,
                        image_url=pl.line.image,
                    )
                    for line_no, pl in enumerate(lines)
                ],
            )

            # 6) Take stock
            for pl in lines:
                product_id, name = pl.product.id, pl.product.name
                taken = self.product_repo.decrement_stock_if_available(
                    session, product_id, pl.line.quantity
                )
                if not taken:
                    # Read inside the transaction so stock taken by
                    # earlier lines of this order is not counted as free
                    available = self.product_repo.get_stock(session, product_id) or 0
                    session.rollback()
                    logger.warning(
                        "Stock for %s changed during checkout: %s requested, %s left",
                        product_id,
                        pl.line.quantity,
                        available,
                    )
                    raise InsufficientStock(name, available, pl.line.quantity)

            # 7) Commit transaction
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to persist order for buyer %s", current_user.id)
            raise StorageError()

        session.refresh(order)
        logger.info(
            "Order %s created: buyer=%s seller=%s lines=%d total=%.2f %s",
            order.id,
            order.buyer_id,
            order.seller_id,
            len(lines),
            order.total_price,
            order.currency,
        )
        items = self.order_repo.list_items_for_order(session, order.id)
        return OrderRead(**self._base_fields(order, items), buyer=order.buyer_id, seller=order.seller_id)

    def _resolve_seller(self, lines: list[PricedLine]) -> uuid.UUID:
        """
        The catalog owner of the first line is the order's seller.

        Lines owned by another seller, or a client-supplied seller that
        disagrees with the catalog, are rejected.
        """
        seller_id = lines[0].product.seller_id
        for pl in lines:
            if pl.line.seller is not None and _parse_id(pl.line.seller) != pl.product.seller_id:
                raise SellerMismatch(pl.line.product)
            if pl.product.seller_id != seller_id:
                raise MixedSellerOrder()
        return seller_id

    # -------- Single order --------

    def get_order(
        self,
        session: Session,
        current_user: CurrentUser,
        order_id: str | uuid.UUID,
    ) -> OrderDetailRead:
        """
        Single order for its buyer, its seller or an admin.

        - 404 if the id is unknown or malformed (indistinguishable).
        - 403 for anyone else.
        """
        order = self._get_or_404(session, order_id)
        if not policy.can_access(order, current_user):
            logger.warning("User %s denied read on order %s", current_user.id, order.id)
            raise Forbidden("Not authorized to access this order")

        items = self.order_repo.list_items_for_order(session, order.id)
        users = self.user_repo.get_many(session, [order.buyer_id, order.seller_id])
        return OrderDetailRead(
            **self._base_fields(order, items),
            buyer=self._public_profile(users.get(order.buyer_id)),
            seller=self._public_profile(users.get(order.seller_id)),
        )

    # -------- Status transitions --------

    def mark_paid(
        self,
        session: Session,
        current_user: CurrentUser,
        order_id: str | uuid.UUID,
        confirmation: PaymentConfirmationCreate,
    ) -> OrderRead:
        """
        Record a payment confirmation.

        Any authenticated caller may confirm payment unless
        pay_requires_access is enabled. Re-confirming re-stamps paid_at
        and overwrites the stored confirmation; is_paid never reverts.
        """
        order = self._get_or_404(session, order_id)
        if self.pay_requires_access and not policy.can_access(order, current_user):
            logger.warning("User %s denied payment on order %s", current_user.id, order.id)
            raise Forbidden("Not authorized to pay for this order")

        order.is_paid = True
        order.paid_at = utcnow()
        order.payment_result_id = confirmation.id
        order.payment_result_status = confirmation.status
        order.payment_result_update_time = confirmation.update_time
        order.payment_result_email = (
            confirmation.payer.email_address if confirmation.payer else None
        )
        order.touch()

        order = self._save(session, order)
        logger.info("Order %s marked paid by %s", order.id, current_user.id)
        return self._to_read(session, order)

    def mark_delivered(
        self,
        session: Session,
        current_user: CurrentUser,
        order_id: str | uuid.UUID,
    ) -> OrderRead:
        """
        Confirm delivery. Only the order's seller or an admin.
        Idempotent: a repeat call re-stamps delivered_at.
        """
        order = self._get_or_404(session, order_id)
        if not policy.can_deliver(order, current_user):
            logger.warning("User %s denied delivery on order %s", current_user.id, order.id)
            raise Forbidden("Not authorized to deliver this order")

        order.is_delivered = True
        order.delivered_at = utcnow()
        order.touch()

        order = self._save(session, order)
        logger.info("Order %s marked delivered by %s", order.id, current_user.id)
        return self._to_read(session, order)

    def update_lifecycle_status(
        self,
        session: Session,
        current_user: CurrentUser,
        order_id: str | uuid.UUID,
        payload: LifecycleStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only lifecycle move:

          pending    -> processing, cancelled
          processing -> shipped, cancelled
          shipped    -> delivered
          delivered  -> (terminal)
          cancelled  -> (terminal)

        Same status is a no-op. Any other move raises 400.
        """
        if not policy.has_role(current_user, "admin"):
            raise Forbidden("Not authorized to update this order")

        order = self._get_or_404(session, order_id)
        current = order.lifecycle_status
        new = payload.status

        if current == new:
            return self._to_read(session, order)

        if new not in LIFECYCLE_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition(current, new)

        order.lifecycle_status = new
        order.touch()
        order = self._save(session, order)
        logger.info("Order %s lifecycle %s -> %s", order.id, current, new)
        return self._to_read(session, order)

    # -------- Listings --------

    def list_buyer_orders(self, session: Session, current_user: CurrentUser) -> list[OrderRead]:
        """Orders placed by the current user, newest first."""
        orders = self.order_repo.list_for_buyer(session, current_user.id)
        return self._to_read_many(session, orders)

    def list_seller_orders(self, session: Session, current_user: CurrentUser) -> list[OrderRead]:
        """Orders received by the current seller, newest first."""
        if not policy.can_list_seller_orders(current_user):
            raise Forbidden("Not authorized to view seller orders")
        orders = self.order_repo.list_for_seller(session, current_user.id)
        return self._to_read_many(session, orders)

    def list_all_orders(self, session: Session, current_user: CurrentUser) -> list[OrderAdminRead]:
        """
        Every order (admin only), newest first, with buyer and seller
        reduced to {id, name}.
        """
        if not policy.can_list_all_orders(current_user):
            raise Forbidden("Not authorized to view all orders")

        orders = self.order_repo.list_all(session)
        items = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        users = self.user_repo.get_many(
            session,
            [o.buyer_id for o in orders] + [o.seller_id for o in orders],
        )
        return [
            OrderAdminRead(
                **self._base_fields(o, items.get(o.id, [])),
                buyer=self._summary(users.get(o.buyer_id)),
                seller=self._summary(users.get(o.seller_id)),
            )
            for o in orders
        ]

    # -------- Helpers --------

    def _get_or_404(self, session: Session, order_id: str | uuid.UUID) -> Order:
        parsed = _parse_id(order_id)
        order = self.order_repo.get_by_id(session, parsed) if parsed else None
        if order is None:
            raise OrderNotFound()
        return order

    def _save(self, session: Session, order: Order) -> Order:
        try:
            self.order_repo.update_order(session, order)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to update order %s", order.id)
            raise StorageError()
        session.refresh(order)
        return order

    def _to_read(self, session: Session, order: Order) -> OrderRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        return OrderRead(**self._base_fields(order, items), buyer=order.buyer_id, seller=order.seller_id)

    def _to_read_many(self, session: Session, orders: list[Order]) -> list[OrderRead]:
        items = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        return [
            OrderRead(**self._base_fields(o, items.get(o.id, [])), buyer=o.buyer_id, seller=o.seller_id)
            for o in orders
        ]

    @staticmethod
    def _public_profile(user: User | None) -> UserPublic | None:
        if user is None:
            return None
        return UserPublic(id=user.id, name=user.name, email=user.email)

    @staticmethod
    def _summary(user: User | None) -> UserSummary | None:
        if user is None:
            return None
        return UserSummary(id=user.id, name=user.name)

    @staticmethod
    def _base_fields(order: Order, items: list[OrderItem]) -> dict[str, Any]:
        """
        Compose the fields shared by every order view from ORM rows.
        """
        confirmation = None
        if order.paid_at is not None:
            confirmation = PaymentConfirmationRead(
                id=order.payment_result_id,
                status=order.payment_result_status,
                update_time=order.payment_result_update_time,
                payer_email=order.payment_result_email,
            )

        return {
            "id": order.id,
            "items": [
                OrderItemRead(
                    product=it.product_id,
                    name=it.name,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    image=it.image_url,
                    line_total=round(it.quantity * it.unit_price, 2),
                )
                for it in items
            ],
            "shipping_address": ShippingAddress(
                full_name=order.shipping_full_name,
                address=order.shipping_address,
                city=order.shipping_city,
                postal_code=order.shipping_postal_code,
                country=order.shipping_country,
                port=order.shipping_port,
            ),
            "payment_method": order.payment_method,
            "items_price": order.items_price,
            "tax_price": order.tax_price,
            "shipping_price": order.shipping_price,
            "total_price": order.total_price,
            "currency": order.currency,
            "lifecycle_status": order.lifecycle_status,
            "is_paid": order.is_paid,
            "paid_at": order.paid_at,
            "payment_confirmation": confirmation,
            "is_delivered": order.is_delivered,
            "delivered_at": order.delivered_at,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }
