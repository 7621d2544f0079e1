# stockpile/api/v1/item.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy import exists
from sqlalchemy.ext.asyncio import AsyncSession

from stockpile.api import endpoint
from stockpile.api.dependencies import AUTHENTICATED, SUBSCRIBED, get_current_user
from stockpile.core.errors import NotFoundError
from stockpile.db.database import get_db
from stockpile.db.errors import DataAccessError
from stockpile.db.models import User
from stockpile.db.query import QuerySpec
from stockpile.db.repository import Repository
from stockpile.db.resources import (
    BRANDS,
    CATEGORIES,
    CUSTOM_FIELD_CATEGORIES,
    CUSTOM_FIELDS,
    ITEM_CUSTOM_FIELDS,
    ITEMS,
    MODELS,
    RENTAL_ITEMS,
    RENTALS,
)

router = APIRouter()

items = ITEMS.table
models = MODELS.table
brands = BRANDS.table
categories = CATEGORIES.table
rentals = RENTALS.table
rental_items = RENTAL_ITEMS.table
custom_fields = CUSTOM_FIELDS.table
field_categories = CUSTOM_FIELD_CATEGORIES.table
item_fields = ITEM_CUSTOM_FIELDS.table

MESSAGES = {"missing": "Item does not exist"}
FIELD_MESSAGES = {
    "missing": "Item custom field does not exist",
    "bad_request": "Item or custom field does not exist",
}

# An item is available while none of its rental items is unreturned
available = ~exists().where(
    rental_items.c.barcode == items.c.barcode,
    rental_items.c.returned.is_(None),
)


def with_fields_and_filters(request: Request, spec: QuerySpec) -> QuerySpec:
    """Add model, brand and category names and availability to each item."""
    return (
        spec.select(
            models.c.name.label("model"),
            models.c.brand_id,
            brands.c.name.label("brand"),
            categories.c.name.label("category"),
            available.label("available"),
        )
        .join(models, models.c.id == items.c.model_id)
        .join(brands, brands.c.id == models.c.brand_id)
        .outerjoin(categories, categories.c.id == items.c.category_id)
    )


def rentals_with_item(request: Request, spec: QuerySpec) -> QuerySpec:
    return (
        spec.select(rental_items.c.returned)
        .join(rental_items, rental_items.c.rental_id == rentals.c.id)
        .where(rental_items.c.barcode == request.path_params["barcode"])
    )


def for_item(request: Request, spec: QuerySpec) -> QuerySpec:
    return spec.where(item_fields.c.barcode == request.path_params["barcode"])


endpoint.add_all_methods(
    router,
    "/item",
    ITEMS,
    messages=MESSAGES,
    read_dependencies=AUTHENTICATED,
    write_dependencies=SUBSCRIBED,
    modify=with_fields_and_filters,
    list_options={
        "sort_by": (brands.c.name, models.c.name, items.c.barcode),
        "search_columns": (brands.c.name, models.c.name, items.c.barcode),
        "filters": {
            "brand_id": models.c.brand_id,
            "model_id": items.c.model_id,
            "category_id": items.c.category_id,
            "available": available,
        },
    },
)

router.add_api_route(
    "/item/{barcode}/rentals",
    endpoint.get_all(RENTALS, modify=rentals_with_item, sort_by=(rentals.c.start_date.desc(),)),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)


@router.get("/item/{barcode}/rental/active")
async def get_active_rental(
    barcode: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Earliest rental still holding the item"""
    spec = (
        QuerySpec()
        .select(rental_items.c.returned)
        .join(rental_items, rental_items.c.rental_id == rentals.c.id)
        .where(rental_items.c.barcode == barcode, rental_items.c.returned.is_(None))
        .order(rentals.c.start_date, rentals.c.id)
        .paginate(1)
    )
    try:
        found = await Repository(RENTALS, db).get_all(current_user.organization_id, spec)
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, MESSAGES) from exc
    if not found:
        raise NotFoundError("Item has no active rental")
    return found[0]


@router.get("/item/{barcode}/status")
async def get_item_status(
    barcode: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Whether the item is available for rental"""
    spec = QuerySpec().only(items.c.barcode).select(available.label("available"))
    try:
        return await Repository(ITEMS, db).get(barcode, current_user.organization_id, spec)
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, MESSAGES) from exc


@router.get("/item/{barcode}/custom-field")
async def get_item_custom_fields(
    barcode: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Custom fields applicable to the item's category, with current values"""
    organization_id = current_user.organization_id
    try:
        item = await Repository(ITEMS, db).get(barcode, organization_id)

        # Fields without categories apply to every item
        applies = ~exists().where(field_categories.c.custom_field_id == custom_fields.c.id)
        if item["category_id"] is not None:
            applies = applies | exists().where(
                field_categories.c.custom_field_id == custom_fields.c.id,
                field_categories.c.category_id == item["category_id"],
            )

        spec = (
            QuerySpec()
            .only(
                custom_fields.c.id,
                custom_fields.c.name,
                custom_fields.c.field_type_id,
                custom_fields.c.show_timestamp,
                item_fields.c.value,
                item_fields.c.updated_at,
            )
            .outerjoin(
                item_fields,
                (item_fields.c.custom_field_id == custom_fields.c.id) & (item_fields.c.barcode == item["barcode"]),
            )
            .where(applies)
            .order(custom_fields.c.name)
        )
        results = await Repository(CUSTOM_FIELDS, db).get_all(organization_id, spec)
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, MESSAGES) from exc
    return {"results": results}


router.add_api_route(
    "/item/{barcode}/custom-field/{custom_field_id}",
    endpoint.get(ITEM_CUSTOM_FIELDS, modify=for_item, messages=FIELD_MESSAGES),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)


@router.put("/item/{barcode}/custom-field/{custom_field_id}", dependencies=SUBSCRIBED)
async def put_item_custom_field(
    barcode: str,
    custom_field_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Set the value of a custom field for one item"""
    body = await endpoint.read_body(request)
    repository = Repository(ITEM_CUSTOM_FIELDS, db)
    try:
        await repository.upsert(
            {**body, "barcode": barcode, "custom_field_id": custom_field_id},
            ("barcode", "custom_field_id"),
            current_user.organization_id,
        )
        row = await repository.get(
            custom_field_id,
            current_user.organization_id,
            spec=QuerySpec().modify(for_item, request),
        )
        await repository.commit()
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, FIELD_MESSAGES) from exc

    return {
        "message": "Updated item custom field",
        "value": row["value"],
        "updated_at": row["updated_at"],
    }


router.add_api_route(
    "/item/{barcode}/custom-field/{custom_field_id}",
    endpoint.delete(ITEM_CUSTOM_FIELDS, modify=for_item, messages=FIELD_MESSAGES),
    methods=["DELETE"],
    dependencies=SUBSCRIBED,
)
