# stockpile/api/v1/model.py
from fastapi import APIRouter
from fastapi import Request

from stockpile.api import endpoint
from stockpile.api.dependencies import AUTHENTICATED, SUBSCRIBED
from stockpile.db.query import QuerySpec
from stockpile.db.resources import BRANDS, KIT_MODELS, KITS, MODELS

router = APIRouter()

models = MODELS.table
brands = BRANDS.table
kits = KITS.table
kit_models = KIT_MODELS.table

MESSAGES = {"missing": "Model does not exist"}


def with_brand(request: Request, spec: QuerySpec) -> QuerySpec:
    """Add the brand name to each model."""
    return spec.select(brands.c.name.label("brand")).join(brands, brands.c.id == models.c.brand_id)


def kits_with_model(request: Request, spec: QuerySpec) -> QuerySpec:
    model_id = MODELS.coerce("id", request.path_params["id"])
    return spec.join(kit_models, kit_models.c.kit_id == kits.c.id).where(kit_models.c.model_id == model_id)


endpoint.add_all_methods(
    router,
    "/model",
    MODELS,
    messages=MESSAGES,
    read_dependencies=AUTHENTICATED,
    write_dependencies=SUBSCRIBED,
    modify=with_brand,
    list_options={
        "sort_by": (brands.c.name, models.c.name),
        "search_columns": (models.c.name, brands.c.name),
        "filters": {"brand_id": models.c.brand_id},
    },
)

router.add_api_route(
    "/model/{id}/kits",
    endpoint.get_all(KITS, modify=kits_with_model, sort_by=(kits.c.name,)),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)
