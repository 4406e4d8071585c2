# marketplace/schemas/user.py
import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict

from marketplace.schemas.common import CamelModel

# App-level roles. Guests have no token and no row.
Role = Literal["buyer", "seller", "admin"]

ADMIN: Role = "admin"
SELLER: Role = "seller"
BUYER: Role = "buyer"


class CurrentUser(BaseModel):
    """
    Request-scoped identity resolved from the bearer token.

    Passed explicitly into every service call; nothing reads the
    current user from ambient state.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    role: Role
    is_active: bool = True
    name: str | None = None
    email: str | None = None


class UserSummary(CamelModel):
    """Admin list projection of a buyer/seller."""

    id: uuid.UUID
    name: str


class UserPublic(UserSummary):
    """Minimal public profile shown on a single order."""

    email: str
