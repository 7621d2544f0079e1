# stockpile/api/v1/brand.py
from fastapi import APIRouter

from stockpile.api.dependencies import AUTHENTICATED, SUBSCRIBED
from stockpile.api.endpoint import add_all_methods
from stockpile.db.resources import BRANDS

router = APIRouter()

brands = BRANDS.table

add_all_methods(
    router,
    "/brand",
    BRANDS,
    messages={"missing": "Brand does not exist"},
    read_dependencies=AUTHENTICATED,
    write_dependencies=SUBSCRIBED,
    list_options={"sort_by": (brands.c.name,), "search_columns": (brands.c.name,)},
)
