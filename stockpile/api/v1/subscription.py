# stockpile/api/v1/subscription.py
import json
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from stockpile.api import endpoint
from stockpile.api.dependencies import ADMIN
from stockpile.core.config import settings
from stockpile.core.constants import BILLING_STATUS_MAP, Role, SubscriptionStatus
from stockpile.core.errors import BadRequestError, InternalServerError, PaymentRequiredError
from stockpile.core.logging import logger, request_context
from stockpile.core.security import hash_password
from stockpile.db.base import utcnow
from stockpile.db.database import get_db
from stockpile.db.errors import DataAccessError, InvalidValueError
from stockpile.db.models.subscription import SubscriptionStatus as StatusModel
from stockpile.db.query import QuerySpec
from stockpile.db.repository import Repository
from stockpile.db.resources import ORGANIZATIONS, SUBSCRIPTIONS, USERS
from stockpile.services.payments import CardDeclinedError, PaymentProviderError, PeachPaymentsService, get_payments_service

router = APIRouter()

subscriptions = SUBSCRIPTIONS.table
statuses = StatusModel.__table__

SIGNUP_MESSAGES = {
    "conflict": "A user with this email already exists",
    "bad_request": "wrong fields in organization or user",
}


def with_status(request: Request, spec: QuerySpec) -> QuerySpec:
    """Add the name of the current subscription status."""
    return spec.select(statuses.c.name.label("status")).join(statuses, statuses.c.id == subscriptions.c.status_id)


router.add_api_route(
    "/subscription/{organization_id}",
    endpoint.get(SUBSCRIPTIONS, modify=with_status, messages={"missing": "Subscription does not exist"}),
    methods=["GET"],
    dependencies=ADMIN,
)


@router.post("/subscription", status_code=201)
async def create_subscription(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payments: PeachPaymentsService = Depends(get_payments_service),
):
    """Sign up a new organization

    Resolves the card registration with the payment provider, then creates the
    organization, a trial subscription and the first user, who is an
    administrator.
    """
    body = await endpoint.read_body(request)
    organization = body.get("organization")
    user = body.get("user")
    if not isinstance(organization, dict) or not isinstance(user, dict) or not organization or not user:
        raise BadRequestError("Missing user or organization")
    if not body.get("token"):
        raise BadRequestError("Missing payment token")

    try:
        registration = await payments.get_registration(str(body["token"]))
    except CardDeclinedError as e:
        raise PaymentRequiredError(e.message) from e
    except PaymentProviderError as e:
        raise InternalServerError(e.message) from e

    billing_customer = registration["registration_id"]
    organization_repository = Repository(ORGANIZATIONS, db)
    try:
        organization_id = await organization_repository.create({**organization, "billing_customer": billing_customer})
        await Repository(SUBSCRIPTIONS, db).create(
            {
                "organization_id": organization_id,
                "billing_customer": billing_customer,
                "valid": True,
                "status_id": int(SubscriptionStatus.TRIAL),
                "status_until": utcnow() + timedelta(days=settings.TRIAL_PERIOD_DAYS),
            }
        )
        password = user.get("password")
        user_id = await Repository(USERS, db).create(
            {
                **user,
                "password": hash_password(str(password)) if password else None,
                "organization_id": organization_id,
                "role_id": int(Role.ADMIN),
            }
        )
        await organization_repository.commit()
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, SIGNUP_MESSAGES) from exc

    logger.info(f"Created organization {organization_id} with trial subscription", extra=request_context(request))
    return {
        "message": "Subscription created",
        "organization_id": organization_id,
        "user_id": user_id,
    }


def period_end(value):
    """Provider period end, as unix seconds or an ISO 8601 string."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)
    return SUBSCRIPTIONS.coerce("status_until", value)


@router.post("/subscription/hook")
async def subscription_hook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payments: PeachPaymentsService = Depends(get_payments_service),
):
    """Apply a subscription status change sent by the payment provider"""
    payload = await request.body()
    signature = request.headers.get("X-Signature", "")
    if not payments.verify_webhook_signature(payload, signature):
        logger.warning("Rejected webhook with invalid signature", extra=request_context(request))
        raise BadRequestError("invalid webhook signature")

    try:
        event = json.loads(payload or b"{}")
    except ValueError:
        raise BadRequestError("request body must be valid JSON") from None

    customer = event.get("customer") if isinstance(event, dict) else None
    if not customer:
        raise BadRequestError("could not get customer from webhook request")

    # No status means the subscription no longer exists
    status, valid = BILLING_STATUS_MAP.get(event.get("status"), (SubscriptionStatus.CANCELED, False))
    try:
        status_until = period_end(event.get("current_period_end")) if valid else None
    except InvalidValueError:
        raise BadRequestError("invalid current_period_end") from None

    repository = Repository(SUBSCRIPTIONS, db)
    try:
        await repository.update(
            customer,
            {"status_id": int(status), "valid": valid, "status_until": status_until},
            column="billing_customer",
        )
        await repository.commit()
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, {"missing": "Subscription does not exist"}) from exc

    logger.info(f"Subscription for {customer} is now {status.name}", extra=request_context(request))
    return {}
