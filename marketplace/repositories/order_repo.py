# marketplace/repositories/order_repo.py
import uuid
from collections import defaultdict

from sqlmodel import Session, col, select

from marketplace.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; order creation is a multi-step transaction.
        The service is responsible for calling session.commit().
      - Listings are newest first and unpaginated.
    """

    # ---- Orders ----

    def list_for_buyer(self, session: Session, buyer_id: uuid.UUID) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.buyer_id == buyer_id)
            .order_by(col(Order.created_at).desc())
        )
        return list(session.exec(stmt).all())

    def list_for_seller(self, session: Session, seller_id: uuid.UUID) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.seller_id == seller_id)
            .order_by(col(Order.created_at).desc())
        )
        return list(session.exec(stmt).all())

    def list_all(self, session: Session) -> list[Order]:
        stmt = select(Order).order_by(col(Order.created_at).desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(col(OrderItem.line_no))
        )
        return list(session.exec(stmt).all())

    def list_items_for_orders(
        self,
        session: Session,
        order_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        """Items of several orders in one query, grouped by order id."""
        grouped: dict[uuid.UUID, list[OrderItem]] = defaultdict(list)
        if not order_ids:
            return grouped
        stmt = (
            select(OrderItem)
            .where(col(OrderItem.order_id).in_(order_ids))
            .order_by(col(OrderItem.order_id), col(OrderItem.line_no))
        )
        for item in session.exec(stmt).all():
            grouped[item.order_id].append(item)
        return grouped

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items
