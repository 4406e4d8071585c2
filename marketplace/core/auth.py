# marketplace/core/auth.py
import uuid
from typing import Any, Callable, get_args

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from marketplace.core.config import get_settings
from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.schemas.user import CurrentUser, Role

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can answer with our own 401 message.
bearer_scheme = HTTPBearer(auto_error=False)

ROLES = frozenset(get_args(Role))


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token issued by the identity service.

    Verification:
      - signature (JWT_SECRET / JWT_ALG)
      - expiration time (exp), when present

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Not authorized, token failed")


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> CurrentUser | None:
    """
    Resolve the caller from the bearer token.

    Flow:
      1. No Authorization header => guest => None.
      2. Decode JWT => 'sub' is the user id.
      3. Load the user; unknown ids and deactivated accounts get 401,
         a stored role outside buyer/seller/admin gets 403.

    Returns:
        CurrentUser for authenticated callers, else None for guests.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub:
        raise _unauthorized("Not authorized, token failed")

    try:
        user_id = uuid.UUID(str(sub))
    except ValueError:
        raise _unauthorized("Not authorized, token failed")

    user = session.get(User, user_id)
    if user is None:
        raise _unauthorized("Not authorized, user not found")

    if not user.is_active:
        raise _unauthorized("Account is deactivated")

    if user.role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User role '{user.role}' is not authorized to access this resource",
        )

    return CurrentUser(
        id=user.id,
        role=user.role,
        is_active=user.is_active,
        name=user.name,
        email=user.email,
    )


def require_auth(user: CurrentUser | None = Depends(get_current_user)) -> CurrentUser:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if the caller is a guest.
    """
    if user is None:
        raise _unauthorized("Not authorized, no token")
    return user


def require_roles(*roles: Role) -> Callable[..., CurrentUser]:
    """
    Build a dependency that admits only the given roles.

        @router.get("/x", dependencies=[Depends(require_roles("admin"))])

    Raises:
        HTTPException(403): if the caller's role is not listed.
    """

    def dependency(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role '{user.role}' is not authorized to access this resource",
            )
        return user

    return dependency


require_admin = require_roles("admin")
require_seller = require_roles("seller")
