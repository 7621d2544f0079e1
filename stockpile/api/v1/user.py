# stockpile/api/v1/user.py
from fastapi import APIRouter, Request

from stockpile.api import endpoint
from stockpile.api.dependencies import ADMIN, USER_MATCHES
from stockpile.core.constants import Role
from stockpile.core.errors import ForbiddenError
from stockpile.core.security import hash_password
from stockpile.db.models.user import Role as RoleModel
from stockpile.db.query import QuerySpec
from stockpile.db.resources import USERS

router = APIRouter()

users = USERS.table
roles = RoleModel.__table__

MESSAGES = {
    "missing": "User does not exist",
    "conflict": "A user with this email already exists",
}


def with_role(request: Request, spec: QuerySpec) -> QuerySpec:
    """Add the role name to each user."""
    return spec.select(roles.c.name.label("role")).join(roles, roles.c.id == users.c.role_id)


def prepare_user(request: Request, body):
    """Hash a new password; only administrators may change roles."""
    if isinstance(body, dict):
        caller = request.state.user
        if "role_id" in body and caller.role_id != Role.ADMIN:
            raise ForbiddenError("Must be an administrator")
        if body.get("password"):
            body = {**body, "password": hash_password(str(body["password"]))}
    return body


router.add_api_route(
    "/user",
    endpoint.get_all(
        USERS,
        modify=with_role,
        messages=MESSAGES,
        sort_by=(users.c.last_name, users.c.first_name),
        search_columns=(users.c.first_name, users.c.last_name, users.c.email),
        filters={"role_id": users.c.role_id},
    ),
    methods=["GET"],
    dependencies=ADMIN,
)
router.add_api_route(
    "/user/{id}",
    endpoint.get(USERS, modify=with_role, messages=MESSAGES),
    methods=["GET"],
    dependencies=USER_MATCHES,
)
router.add_api_route(
    "/user/{id}",
    endpoint.update(USERS, modify=with_role, body_modify=prepare_user, messages=MESSAGES),
    methods=["PUT"],
    dependencies=USER_MATCHES,
)
router.add_api_route(
    "/user/{id}",
    endpoint.delete(USERS, messages=MESSAGES),
    methods=["DELETE"],
    dependencies=USER_MATCHES,
)
