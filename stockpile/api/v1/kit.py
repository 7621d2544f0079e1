# stockpile/api/v1/kit.py
from fastapi import APIRouter, Request

from stockpile.api import endpoint
from stockpile.api.dependencies import AUTHENTICATED
from stockpile.core.errors import BadRequestError
from stockpile.db.query import QuerySpec
from stockpile.db.resources import BRANDS, KIT_MODELS, KITS, MODELS

router = APIRouter()

kits = KITS.table
kit_models = KIT_MODELS.table
models = MODELS.table
brands = BRANDS.table

KIT_MODEL_MESSAGES = {
    "create": "Added model to kit",
    "delete": "Removed model from kit",
    "conflict": "Model is already in kit",
    "bad_request": "Kit or model does not exist",
}


def models_in_kit(request: Request, spec: QuerySpec) -> QuerySpec:
    kit_id = KITS.coerce("id", request.path_params["id"])
    return (
        spec.select(brands.c.name.label("brand"))
        .join(brands, brands.c.id == models.c.brand_id)
        .join(kit_models, kit_models.c.model_id == models.c.id)
        .where(kit_models.c.kit_id == kit_id)
    )


def in_kit(request: Request, spec: QuerySpec) -> QuerySpec:
    return spec.where(kit_models.c.kit_id == KITS.coerce("id", request.path_params["id"]))


def kit_model_from_path(request: Request, body):
    if not isinstance(body, dict):
        raise BadRequestError("request body must be a JSON object")
    return {**body, "kit_id": request.path_params["id"], "model_id": request.path_params["model_id"]}


endpoint.add_all_methods(
    router,
    "/kit",
    KITS,
    messages={"missing": "Kit does not exist"},
    read_dependencies=AUTHENTICATED,
    write_dependencies=AUTHENTICATED,
    list_options={"sort_by": (kits.c.name,), "search_columns": (kits.c.name,)},
)

router.add_api_route(
    "/kit/{id}/model",
    endpoint.get_all(MODELS, modify=models_in_kit, sort_by=(brands.c.name, models.c.name)),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/kit/{id}/model/{model_id}",
    endpoint.create(KIT_MODELS, body_modify=kit_model_from_path, messages=KIT_MODEL_MESSAGES),
    methods=["PUT"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/kit/{id}/model/{model_id}",
    endpoint.delete(KIT_MODELS, param="model_id", modify=in_kit, messages=KIT_MODEL_MESSAGES),
    methods=["DELETE"],
    dependencies=AUTHENTICATED,
)
