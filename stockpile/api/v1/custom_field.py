# stockpile/api/v1/custom_field.py
from fastapi import APIRouter, Request

from stockpile.api import endpoint
from stockpile.api.dependencies import AUTHENTICATED
from stockpile.core.errors import BadRequestError
from stockpile.db.query import QuerySpec
from stockpile.db.resources import CATEGORIES, CUSTOM_FIELD_CATEGORIES, CUSTOM_FIELDS

router = APIRouter()

custom_fields = CUSTOM_FIELDS.table
categories = CATEGORIES.table
field_categories = CUSTOM_FIELD_CATEGORIES.table

MESSAGES = {
    "create": "Created custom field",
    "delete": "Deleted custom field",
    "conflict": "A custom field with this name already exists",
    "missing": "Custom field does not exist",
}

CATEGORY_MESSAGES = {
    "create": "Added category to custom field",
    "delete": "Removed category from custom field",
    "conflict": "Custom field already applies to this category",
    "bad_request": "Custom field or category does not exist",
}


def categories_of_field(request: Request, spec: QuerySpec) -> QuerySpec:
    field_id = CUSTOM_FIELDS.coerce("id", request.path_params["id"])
    return (
        spec.join(field_categories, field_categories.c.category_id == categories.c.id)
        .where(field_categories.c.custom_field_id == field_id)
    )


def of_field(request: Request, spec: QuerySpec) -> QuerySpec:
    return spec.where(field_categories.c.custom_field_id == CUSTOM_FIELDS.coerce("id", request.path_params["id"]))


def field_category_from_path(request: Request, body):
    if not isinstance(body, dict):
        raise BadRequestError("request body must be a JSON object")
    return {**body, "custom_field_id": request.path_params["id"], "category_id": request.path_params["category_id"]}


endpoint.add_all_methods(
    router,
    "/custom-field",
    CUSTOM_FIELDS,
    messages=MESSAGES,
    read_dependencies=AUTHENTICATED,
    write_dependencies=AUTHENTICATED,
    list_options={"sort_by": (custom_fields.c.name,), "search_columns": (custom_fields.c.name,)},
)

router.add_api_route(
    "/custom-field/{id}/category",
    endpoint.get_all(CATEGORIES, modify=categories_of_field, sort_by=(categories.c.name,)),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/custom-field/{id}/category/{category_id}",
    endpoint.create(CUSTOM_FIELD_CATEGORIES, body_modify=field_category_from_path, messages=CATEGORY_MESSAGES),
    methods=["PUT"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/custom-field/{id}/category/{category_id}",
    endpoint.delete(CUSTOM_FIELD_CATEGORIES, param="category_id", modify=of_field, messages=CATEGORY_MESSAGES),
    methods=["DELETE"],
    dependencies=AUTHENTICATED,
)
