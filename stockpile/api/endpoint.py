# stockpile/api/endpoint.py
"""
Resource endpoint factory.

Each factory function builds one request handler for a table described by a
:class:`ResourceSchema`. Handlers read parameters from the request, call the
repository scoped to the caller's organization, translate data access errors
into HTTP errors in a single step and serialize the result.

Every handler accepts a ``modify(request, spec)`` function, which lets a
resource add joins, columns or filters without changing the generic dispatch.
"""
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stockpile.api.dependencies import get_current_user
from stockpile.api.filters import apply_filters
from stockpile.api.pagination import add_links, parse_page
from stockpile.core.config import settings
from stockpile.core.errors import (
    APIError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalServerError,
    NotFoundError,
    UnprocessableEntityError,
)
from stockpile.core.logging import logger, redact, request_context
from stockpile.db.database import get_db
from stockpile.db.errors import (
    OVERLAP_MESSAGE,
    DataAccessError,
    DuplicateRowError,
    InvalidReferenceError,
    MissingDataError,
    OverlapError,
    RowNotFoundError,
    ScopeViolationError,
    UnknownColumnsError,
)
from stockpile.db.models import User
from stockpile.db.query import QuerySpec
from stockpile.db.repository import Repository
from stockpile.db.schema import ResourceSchema

Modifier = Callable[[Request, QuerySpec], Optional[QuerySpec]]
BodyModifier = Callable[[Request, Any], Any]

DEFAULT_MESSAGES = {
    "create": "created",
    "delete": "deleted",
    "bad_request": "wrong fields in request body",
    "forbidden": "cannot modify another organization",
    "missing": "does not exist",
    "conflict": "already exists",
    "overlap": OVERLAP_MESSAGE,
    "unprocessable": "request body is empty",
    "default": "something went wrong",
}

# Checked in order; subclasses before their bases
ERROR_TRANSLATIONS = (
    (OverlapError, ConflictError, "overlap"),
    (DuplicateRowError, ConflictError, "conflict"),
    (UnknownColumnsError, BadRequestError, "bad_request"),
    (InvalidReferenceError, BadRequestError, "bad_request"),
    (ScopeViolationError, ForbiddenError, "forbidden"),
    (RowNotFoundError, NotFoundError, "missing"),
    (MissingDataError, UnprocessableEntityError, "unprocessable"),
)


def choose_message(key: str, messages: Optional[Mapping[str, str]] = None) -> str:
    if messages and messages.get(key):
        return messages[key]
    return DEFAULT_MESSAGES.get(key, DEFAULT_MESSAGES["default"])


def choose_error(error: Exception, messages: Optional[Mapping[str, str]] = None) -> APIError:
    for error_type, api_error, message_key in ERROR_TRANSLATIONS:
        if isinstance(error, error_type):
            return api_error(choose_message(message_key, messages))
    return InternalServerError(choose_message("default", messages))


def handle_error(request: Request, error: DataAccessError, messages: Optional[Mapping[str, str]] = None) -> APIError:
    """Log a data access error and return the HTTP error to raise."""
    api_error = choose_error(error, messages)
    logger.error(
        f"{type(error).__name__} on {error.table}: {error.message}",
        extra={**request_context(request), "status_code": api_error.status_code},
    )
    return api_error


async def read_body(request: Request, allow_list: bool = False) -> Any:
    """Parse a JSON request body, dropping hypermedia ``_links``."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = await request.json()
    except ValueError:
        raise BadRequestError("request body must be valid JSON") from None

    items = body if allow_list and isinstance(body, list) else [body]
    if not all(isinstance(item, dict) for item in items):
        raise BadRequestError("request body must be a JSON object")
    for item in items:
        item.pop("_links", None)

    logger.debug(
        f"{request.method} {request.url.path} body",
        extra={**request_context(request), "body": redact(body)},
    )
    return body


def path_value(request: Request, param: str) -> str:
    return request.path_params[param]


def get_all(
    schema: ResourceSchema,
    *,
    modify: Optional[Modifier] = None,
    messages: Optional[Mapping[str, str]] = None,
    sort_by: Sequence[Any] = (),
    search_columns: Sequence[Any] = (),
    filters: Optional[Mapping[str, Any]] = None,
    paginate: bool = True,
):
    """List rows of the caller's organization as ``{"results": [...]}``."""

    async def handler(
        request: Request,
        response: Response,
        user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_db),
    ):
        page = parse_page(request.query_params, settings.PAGINATION_MAX_LIMIT) if paginate else None
        repository = Repository(schema, session)
        try:
            spec = QuerySpec().order(*sort_by)
            spec.search(request.query_params.get("search"), *search_columns)
            if filters:
                apply_filters(spec, request.query_params, filters)
            spec = spec.modify(modify, request)
            if page is not None:
                spec.paginate(page.limit, page.offset)

            body: Dict[str, Any] = {"results": await repository.get_all(user.organization_id, spec)}
            if page is not None:
                body["_links"] = await add_links(request, response, repository, user.organization_id, spec, page)
        except DataAccessError as exc:
            raise handle_error(request, exc, messages) from exc
        return body

    return handler


def get(
    schema: ResourceSchema,
    *,
    param: Optional[str] = None,
    modify: Optional[Modifier] = None,
    messages: Optional[Mapping[str, str]] = None,
):
    """Return the row named by the ``param`` path segment."""
    param = param or schema.key

    async def handler(
        request: Request,
        user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_db),
    ):
        try:
            spec = QuerySpec().modify(modify, request)
            return await Repository(schema, session).get(path_value(request, param), user.organization_id, spec)
        except DataAccessError as exc:
            raise handle_error(request, exc, messages) from exc

    return handler


def create(
    schema: ResourceSchema,
    *,
    body_modify: Optional[BodyModifier] = None,
    messages: Optional[Mapping[str, str]] = None,
):
    """Insert the request body, defaulting its organization to the caller's."""

    async def handler(
        request: Request,
        response: Response,
        user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_db),
    ):
        body = await read_body(request, allow_list=True)
        if body_modify is not None:
            body = body_modify(request, body)

        repository = Repository(schema, session)
        try:
            key = await repository.create(body, user.organization_id)
            await repository.commit()
        except DataAccessError as exc:
            raise handle_error(request, exc, messages) from exc

        response.status_code = 201
        return {"id": key, "message": choose_message("create", messages)}

    return handler


def update(
    schema: ResourceSchema,
    *,
    param: Optional[str] = None,
    modify: Optional[Modifier] = None,
    response_modify: Optional[Modifier] = None,
    body_modify: Optional[BodyModifier] = None,
    messages: Optional[Mapping[str, str]] = None,
):
    """Update the row named by the path and return it as stored."""
    param = param or schema.key

    async def handler(
        request: Request,
        user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_db),
    ):
        body = await read_body(request)
        if body_modify is not None:
            body = body_modify(request, body)

        repository = Repository(schema, session)
        try:
            spec = QuerySpec().modify(modify, request).modify(response_modify, request)
            row = await repository.update(path_value(request, param), body, user.organization_id, spec=spec)
            await repository.commit()
        except DataAccessError as exc:
            raise handle_error(request, exc, messages) from exc
        return row

    return handler


def delete(
    schema: ResourceSchema,
    *,
    param: Optional[str] = None,
    modify: Optional[Modifier] = None,
    messages: Optional[Mapping[str, str]] = None,
):
    """Delete the row named by the path; 204 when it was already absent."""
    param = param or schema.key

    async def handler(
        request: Request,
        user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_db),
    ):
        repository = Repository(schema, session)
        try:
            spec = QuerySpec().modify(modify, request)
            count = await repository.delete(path_value(request, param), user.organization_id, spec=spec)
            await repository.commit()
        except DataAccessError as exc:
            raise handle_error(request, exc, messages) from exc

        if count:
            return {"message": choose_message("delete", messages)}
        return Response(status_code=204)

    return handler


def add_all_methods(
    router,
    path: str,
    schema: ResourceSchema,
    *,
    param: Optional[str] = None,
    messages: Optional[Mapping[str, str]] = None,
    read_dependencies: Sequence = (),
    write_dependencies: Sequence = (),
    list_options: Optional[Mapping[str, Any]] = None,
    modify: Optional[Modifier] = None,
    body_modify: Optional[BodyModifier] = None,
) -> None:
    """Register list, get, create, update and delete routes for a resource.

    Lists are served at ``path``, single rows at ``path/{param}``; creation is
    a ``PUT`` on ``path``.
    """
    param = param or schema.key
    item_path = f"{path}/{{{param}}}"
    read_dependencies = list(read_dependencies)
    write_dependencies = list(write_dependencies)

    router.add_api_route(
        path,
        get_all(schema, modify=modify, messages=messages, **(list_options or {})),
        methods=["GET"],
        dependencies=read_dependencies,
    )
    router.add_api_route(
        item_path,
        get(schema, param=param, modify=modify, messages=messages),
        methods=["GET"],
        dependencies=read_dependencies,
    )
    router.add_api_route(
        path,
        create(schema, body_modify=body_modify, messages=messages),
        methods=["PUT"],
        dependencies=write_dependencies,
    )
    router.add_api_route(
        item_path,
        update(schema, param=param, modify=modify, body_modify=body_modify, messages=messages),
        methods=["PUT"],
        dependencies=write_dependencies,
    )
    router.add_api_route(
        item_path,
        delete(schema, param=param, messages=messages),
        methods=["DELETE"],
        dependencies=write_dependencies,
    )
