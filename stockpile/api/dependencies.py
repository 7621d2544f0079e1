# stockpile/api/dependencies.py
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from stockpile.core.config import settings
from stockpile.core.constants import ACTIVE_SUBSCRIPTION_STATUSES, Role
from stockpile.core.errors import ForbiddenError, InternalServerError, PaymentRequiredError, UnauthorizedError
from stockpile.core.logging import logger, request_context
from stockpile.core.security import JWTError, decode_token
from stockpile.db.database import get_db
from stockpile.db.errors import DataAccessError, RowNotFoundError
from stockpile.db.models import User
from stockpile.db.repository import Repository
from stockpile.db.resources import SUBSCRIPTIONS

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user"""
    if not credentials:
        raise UnauthorizedError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
        user_id = int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid token") from None

    user = await db.get(User, user_id)
    if user is None or user.archived is not None:
        raise UnauthorizedError("User not found or archived")

    # Detached so a rollback later in the request cannot expire it
    db.expunge(user)
    request.state.user = user
    request.state.user_id = user.id
    request.state.organization_id = user.organization_id
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role_id != Role.ADMIN:
        raise ForbiddenError("Must be an administrator")
    return current_user


async def require_user_matches(request: Request, current_user: User = Depends(get_current_user)) -> User:
    """The caller must be the user named in the path, or an administrator."""
    if current_user.role_id == Role.ADMIN:
        return current_user
    if str(current_user.id) != str(request.path_params.get("id")):
        raise ForbiddenError("Must be the same user or an administrator")
    return current_user


async def check_subscription(request: Request, db: AsyncSession = Depends(get_db)) -> None:
    """Block callers whose organization has no trial or valid subscription.

    Must run after :func:`get_current_user`. Without a caller on the request
    the gate logs a warning and lets the request through, unless
    ``SUBSCRIPTION_GATE_FAIL_CLOSED`` is set.
    """
    organization_id = getattr(request.state, "organization_id", None)
    if organization_id is None:
        logger.warning(
            f"Subscription check on {request.method} {request.url.path} without an authenticated user",
            extra=request_context(request),
        )
        if settings.SUBSCRIPTION_GATE_FAIL_CLOSED:
            raise UnauthorizedError("Authentication required")
        return

    try:
        subscription = await Repository(SUBSCRIPTIONS, db).get(organization_id, column="organization_id")
    except RowNotFoundError:
        raise PaymentRequiredError("organization has no subscription") from None
    except DataAccessError as exc:
        logger.error(f"Subscription lookup failed: {exc.message}", extra=request_context(request))
        raise InternalServerError() from exc

    if subscription["status_id"] not in ACTIVE_SUBSCRIPTION_STATUSES:
        raise PaymentRequiredError("subscription is invalid")


AUTHENTICATED = [Depends(get_current_user)]
SUBSCRIBED = [Depends(get_current_user), Depends(check_subscription)]
ADMIN = [Depends(require_admin)]
ADMIN_SUBSCRIBED = [Depends(require_admin), Depends(check_subscription)]
USER_MATCHES = [Depends(require_user_matches)]
