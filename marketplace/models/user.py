# marketplace/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Marketplace account, mirrored from the identity service.

    Role:
      - "buyer" | "seller" | "admin"

    This table is *not* responsible for password hashes or token
    issuance. The order engine only reads identity, display name,
    role and the active flag.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(max_length=50)

    role: str = Field(
        default="buyer",
        index=True,
        description="Application role: buyer | seller | admin",
    )

    is_active: bool = Field(
        default=True,
        description="Deactivated accounts are rejected at authentication",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
