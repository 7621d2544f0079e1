# stockpile/api/v1/category.py
from fastapi import APIRouter

from stockpile.api.dependencies import AUTHENTICATED, SUBSCRIBED
from stockpile.api.endpoint import add_all_methods
from stockpile.db.resources import CATEGORIES

router = APIRouter()

categories = CATEGORIES.table

add_all_methods(
    router,
    "/category",
    CATEGORIES,
    messages={"missing": "Category does not exist"},
    read_dependencies=AUTHENTICATED,
    write_dependencies=SUBSCRIBED,
    list_options={"sort_by": (categories.c.name,), "search_columns": (categories.c.name,)},
)
