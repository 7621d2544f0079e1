# stockpile/api/v1/rental.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stockpile.api import endpoint
from stockpile.api.dependencies import AUTHENTICATED, SUBSCRIBED, get_current_user
from stockpile.core.errors import BadRequestError
from stockpile.core.logging import logger, request_context
from stockpile.db.database import get_db
from stockpile.db.errors import DataAccessError
from stockpile.db.models import User
from stockpile.db.repository import Repository
from stockpile.db.resources import RENTAL_ITEMS, RENTALS

router = APIRouter()

rentals = RENTALS.table

MESSAGES = {
    "create": "Created rental",
    "delete": "Deleted rental",
    "missing": "Rental does not exist",
    "bad_request": "wrong fields in request body or unknown renter or item",
}

list_rentals = endpoint.get_all(
    RENTALS,
    messages=MESSAGES,
    sort_by=(rentals.c.start_date.desc(), rentals.c.id),
    search_columns=(rentals.c.notes,),
    filters={
        "user_id": rentals.c.user_id,
        "external_renter_id": rentals.c.external_renter_id,
        "is_reservation": rentals.c.is_reservation,
    },
)

router.add_api_route("/rental", list_rentals, methods=["GET"], dependencies=AUTHENTICATED)
router.add_api_route(
    "/rental/{id}",
    endpoint.get(RENTALS, messages=MESSAGES),
    methods=["GET"],
    dependencies=AUTHENTICATED,
)


@router.put("/rental", status_code=201, dependencies=AUTHENTICATED)
async def create_rental(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a rental and its rental items in one transaction

    ``items`` lists the barcodes to rent. If any of them is already out on an
    overlapping active rental, nothing is written.
    """
    body = await endpoint.read_body(request)
    barcodes = body.pop("items", [])
    if not isinstance(barcodes, list) or not all(isinstance(barcode, str) for barcode in barcodes):
        raise BadRequestError("items must be a list of barcodes")
    if body.get("user_id") is None and body.get("external_renter_id") is None:
        body["user_id"] = current_user.id

    organization_id = current_user.organization_id
    rental_repository = Repository(RENTALS, db)
    try:
        rental_id = await rental_repository.create(body, organization_id)
        if barcodes:
            await Repository(RENTAL_ITEMS, db).create(
                [{"rental_id": rental_id, "barcode": barcode} for barcode in barcodes],
                organization_id,
            )
        await rental_repository.commit()
    except DataAccessError as exc:
        raise endpoint.handle_error(request, exc, MESSAGES) from exc

    logger.info(
        f"Created rental {rental_id} with {len(barcodes)} items",
        extra=request_context(request),
    )
    return {"id": rental_id, "message": MESSAGES["create"]}


router.add_api_route(
    "/rental/{id}",
    endpoint.update(RENTALS, messages=MESSAGES),
    methods=["PUT"],
    dependencies=AUTHENTICATED,
)
router.add_api_route(
    "/rental/{id}",
    endpoint.delete(RENTALS, messages=MESSAGES),
    methods=["DELETE"],
    dependencies=SUBSCRIBED,
)
