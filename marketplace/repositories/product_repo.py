# marketplace/repositories/product_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from marketplace.models.product import Product


class ProductRepository:
    """
    Catalog access needed by the order engine.

    - Lookup by id (stock, seller, name, price).
    - Atomic conditional stock decrement.
    - No commits; the caller owns the transaction.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_stock(self, session: Session, product_id: uuid.UUID) -> int | None:
        """Read the current stock straight from the table, bypassing the identity map."""
        stmt = select(Product.stock).where(Product.id == product_id)
        return session.exec(stmt).first()

    def decrement_stock_if_available(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Decrement stock by `quantity` only if at least that much is left.

        Runs as a single UPDATE ... WHERE stock >= :quantity, so two
        concurrent orders can never both take the last units. Returns
        False when no row matched (stock already too low).
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(
                stock=Product.stock - quantity,
                updated_at=datetime.now(timezone.utc),
            )
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1
