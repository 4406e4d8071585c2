# marketplace/repositories/user_repo.py
import uuid
from collections.abc import Iterable

from sqlmodel import Session, col, select

from marketplace.models.user import User


class UserRepository:
    """
    Read-only access to users for resolving order parties.
    """

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_many(
        self,
        session: Session,
        user_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, User]:
        """Load several users in one query, keyed by id."""
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(User).where(col(User.id).in_(ids))
        return {user.id: user for user in session.exec(stmt).all()}
