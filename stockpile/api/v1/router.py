# stockpile/api/v1/router.py
from fastapi import APIRouter
from stockpile.api.v1 import (
    auth,
    brand,
    category,
    custom_field,
    external_renter,
    item,
    kit,
    main,
    model,
    organization,
    rental,
    rental_item,
    subscription,
    user,
)

api_router = APIRouter()

api_router.include_router(main.router, tags=["main"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(organization.router, tags=["organization"])
api_router.include_router(subscription.router, tags=["subscription"])
api_router.include_router(user.router, tags=["user"])
api_router.include_router(brand.router, tags=["brand"])
api_router.include_router(category.router, tags=["category"])
api_router.include_router(model.router, tags=["model"])
api_router.include_router(kit.router, tags=["kit"])
api_router.include_router(custom_field.router, tags=["custom field"])
api_router.include_router(item.router, tags=["item"])
api_router.include_router(external_renter.router, tags=["external renter"])
api_router.include_router(rental.router, tags=["rental"])
api_router.include_router(rental_item.router, tags=["rental item"])
