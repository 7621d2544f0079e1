# stockpile/api/v1/organization.py
from fastapi import APIRouter, Request

from stockpile.api import endpoint
from stockpile.api.dependencies import ADMIN_SUBSCRIBED, AUTHENTICATED
from stockpile.core.errors import BadRequestError
from stockpile.db.resources import ORGANIZATIONS

router = APIRouter()

MESSAGES = {"missing": "Organization does not exist"}

# Billing references are only written by signup and webhooks
EDITABLE_FIELDS = {"name", "email"}


def editable_fields_only(request: Request, body):
    if set(body) - EDITABLE_FIELDS:
        raise BadRequestError(endpoint.choose_message("bad_request", MESSAGES))
    return body


router.add_api_route(
    "/organization/{id}",
    endpoint.get(ORGANIZATIONS, messages=MESSAGES),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/organization/{id}",
    endpoint.update(ORGANIZATIONS, body_modify=editable_fields_only, messages=MESSAGES),
    methods=["PUT"],
    dependencies=ADMIN_SUBSCRIBED,
)
router.add_api_route(
    "/organization/{id}",
    endpoint.delete(ORGANIZATIONS, messages=MESSAGES),
    methods=["DELETE"],
    dependencies=ADMIN_SUBSCRIBED,
)
