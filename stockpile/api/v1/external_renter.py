# stockpile/api/v1/external_renter.py
from fastapi import APIRouter

from stockpile.api.dependencies import AUTHENTICATED, SUBSCRIBED
from stockpile.api.endpoint import add_all_methods
from stockpile.db.resources import EXTERNAL_RENTERS

router = APIRouter()

renters = EXTERNAL_RENTERS.table

add_all_methods(
    router,
    "/external-renter",
    EXTERNAL_RENTERS,
    messages={"missing": "External renter does not exist"},
    read_dependencies=AUTHENTICATED,
    write_dependencies=SUBSCRIBED,
    list_options={
        "sort_by": (renters.c.name,),
        "search_columns": (renters.c.name, renters.c.email),
    },
)
