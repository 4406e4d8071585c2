# marketplace/core/policy.py
"""
Authorization policy for orders.

Pure decisions over (order, user); no I/O and no ambient state.

Parties are compared by id, never by object equality. An order may
carry raw references (`buyer_id` / `seller_id` on the table model)
or resolved objects (`buyer` / `seller` on the read models, possibly
plain UUIDs); both are normalised to a UUID before comparing.
"""

import uuid
from typing import Any

from marketplace.schemas.user import ADMIN, SELLER, CurrentUser


def _as_uuid(value: Any) -> uuid.UUID | None:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    # Resolved profile objects
    if hasattr(value, "id"):
        return _as_uuid(value.id)
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def party_id(order: Any, party: str) -> uuid.UUID | None:
    """Return the buyer/seller id of `order`, whichever shape it has."""
    raw = getattr(order, f"{party}_id", None)
    if raw is None:
        raw = getattr(order, party, None)
    return _as_uuid(raw)


def has_role(user: CurrentUser, *roles: str) -> bool:
    return user.role in roles


def is_buyer_of(order: Any, user: CurrentUser) -> bool:
    buyer = party_id(order, "buyer")
    return buyer is not None and buyer == _as_uuid(user.id)


def is_seller_of(order: Any, user: CurrentUser) -> bool:
    seller = party_id(order, "seller")
    return seller is not None and seller == _as_uuid(user.id)


def can_access(order: Any, user: CurrentUser) -> bool:
    """Read access: the order's buyer, its seller, or any admin."""
    return is_buyer_of(order, user) or is_seller_of(order, user) or has_role(user, ADMIN)


def can_deliver(order: Any, user: CurrentUser) -> bool:
    """Delivery confirmation: the order's seller or any admin."""
    return is_seller_of(order, user) or has_role(user, ADMIN)


def can_list_seller_orders(user: CurrentUser) -> bool:
    return has_role(user, SELLER)


def can_list_all_orders(user: CurrentUser) -> bool:
    return has_role(user, ADMIN)
