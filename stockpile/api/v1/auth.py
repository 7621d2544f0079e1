# stockpile/api/v1/auth.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stockpile.api import endpoint
from stockpile.api.dependencies import get_current_user, require_admin
from stockpile.core.errors import BadRequestError, UnauthorizedError
from stockpile.core.logging import logger, request_context
from stockpile.core.security import (
    create_access_token,
    generate_refresh_token,
    hash_password,
    tokens_match,
    verify_password,
)
from stockpile.db.database import get_db
from stockpile.db.errors import DataAccessError, RowNotFoundError
from stockpile.db.models import User
from stockpile.db.repository import Repository
from stockpile.db.resources import REFRESH_TOKENS, USERS

router = APIRouter()

REGISTER_MESSAGES = {
    "create": "User registered",
    "conflict": "A user with this email already exists",
}
REGISTER_FIELDS = ("first_name", "last_name", "email", "password")


@router.post("/auth")
async def authenticate(request: Request, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for an access token and a refresh token"""
    body = await endpoint.read_body(request)
    email = body.get("email")
    password = body.get("password")
    if not email or not password:
        raise BadRequestError("Missing email or password")

    result = await db.execute(select(User).where(User.email == str(email)))
    user = result.scalar_one_or_none()
    if user is None or user.archived is not None or not verify_password(str(password), user.password):
        logger.info("Failed login attempt", extra=request_context(request))
        raise UnauthorizedError("Email and password combination is incorrect")

    refresh_token = generate_refresh_token(user.id)
    repository = Repository(REFRESH_TOKENS, db)
    try:
        await repository.upsert({"user_id": user.id, "token": refresh_token}, ("user_id",))
        await repository.commit()
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc) from exc

    return {
        "id": user.id,
        "token": create_access_token(user.id, user.organization_id, user.role_id),
        "refresh_token": refresh_token,
        "message": "Authentication successful",
    }


@router.post("/auth/refresh")
async def refresh(request: Request, db: AsyncSession = Depends(get_db)):
    """Issue a new access token for a stored refresh token"""
    body = await endpoint.read_body(request)
    given = body.get("refresh_token")
    user_id = body.get("user_id")
    if not given or user_id is None:
        raise BadRequestError("Missing refresh token or user id")

    try:
        stored = await Repository(REFRESH_TOKENS, db).get(user_id)
    except RowNotFoundError:
        raise UnauthorizedError("Refresh token is invalid") from None
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc) from exc

    user = await db.get(User, stored["user_id"])
    if user is None or user.archived is not None or not tokens_match(str(given), stored["token"]):
        raise UnauthorizedError("Refresh token is invalid")

    return {
        "token": create_access_token(user.id, user.organization_id, user.role_id),
        "message": "Token refreshed successfully",
    }


@router.post("/auth/register", status_code=201)
async def register(
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a user in the administrator's organization"""
    body = await endpoint.read_body(request)
    missing = [field for field in REGISTER_FIELDS if not body.get(field)]
    if missing:
        raise BadRequestError(f"Missing {', '.join(missing)}")

    body["password"] = hash_password(str(body["password"]))
    repository = Repository(USERS, db)
    try:
        user_id = await repository.create(body, current_user.organization_id)
        user = await repository.get(user_id, current_user.organization_id)
        await repository.commit()
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, REGISTER_MESSAGES) from exc

    logger.info(f"Registered user {user_id}", extra=request_context(request))
    return user


@router.head("/auth/verify")
async def verify(current_user: User = Depends(get_current_user)):
    """Succeeds for a valid token of an active user"""
    return Response(status_code=200)
