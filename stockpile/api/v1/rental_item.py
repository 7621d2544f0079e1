# stockpile/api/v1/rental_item.py
from fastapi import APIRouter, Request

from stockpile.api import endpoint
from stockpile.api.dependencies import ADMIN_SUBSCRIBED, AUTHENTICATED, SUBSCRIBED
from stockpile.core.errors import BadRequestError
from stockpile.db.query import QuerySpec
from stockpile.db.resources import BRANDS, ITEMS, MODELS, RENTAL_ITEMS, RENTALS

router = APIRouter()

rental_items = RENTAL_ITEMS.table
items = ITEMS.table
models = MODELS.table
brands = BRANDS.table

MESSAGES = {
    "create": "Added item to rental",
    "missing": "Rental item does not exist",
    "delete": "Removed item from rental",
    "conflict": "Item is already on this rental",
    "bad_request": "Rental or item does not exist",
}


def in_rental(request: Request, spec: QuerySpec) -> QuerySpec:
    return spec.where(rental_items.c.rental_id == RENTALS.coerce("id", request.path_params["rental_id"]))


def with_item(request: Request, spec: QuerySpec) -> QuerySpec:
    """Add model and brand of the rented item."""
    return (
        in_rental(request, spec)
        .select(
            items.c.model_id,
            models.c.name.label("model"),
            brands.c.name.label("brand"),
        )
        .join(items, items.c.barcode == rental_items.c.barcode)
        .join(models, models.c.id == items.c.model_id)
        .join(brands, brands.c.id == models.c.brand_id)
    )


def rental_from_path(request: Request, body):
    if not isinstance(body, dict):
        raise BadRequestError("request body must be a JSON object")
    return {**body, "rental_id": request.path_params["rental_id"]}


router.add_api_route(
    "/rental/{rental_id}/item",
    endpoint.get_all(RENTAL_ITEMS, modify=with_item, sort_by=(brands.c.name, models.c.name)),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/rental/{rental_id}/item",
    endpoint.create(RENTAL_ITEMS, body_modify=rental_from_path, messages=MESSAGES),
    methods=["PUT"],
    dependencies=SUBSCRIBED,
)
router.add_api_route(
    "/rental/{rental_id}/item/{barcode}",
    endpoint.get(RENTAL_ITEMS, modify=with_item, messages=MESSAGES),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/rental/{rental_id}/item/{barcode}",
    endpoint.update(RENTAL_ITEMS, modify=with_item, messages=MESSAGES),
    methods=["PUT"],
    dependencies=SUBSCRIBED,
)
router.add_api_route(
    "/rental/{rental_id}/item/{barcode}",
    endpoint.delete(RENTAL_ITEMS, modify=in_rental, messages=MESSAGES),
    methods=["DELETE"],
    dependencies=ADMIN_SUBSCRIBED,
)
