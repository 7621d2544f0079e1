# stockpile/db/resources.py
"""Schema descriptors for every table served through the repository."""
from stockpile.db.models import (
    Brand,
    Category,
    CustomField,
    CustomFieldCategory,
    ExternalRenter,
    Item,
    ItemCustomField,
    ItemModel,
    Kit,
    KitModel,
    Organization,
    RefreshToken,
    Rental,
    RentalItem,
    Subscription,
    User,
)
from stockpile.db.schema import Owner, ResourceSchema

# An organization is scoped by its own id
ORGANIZATIONS = ResourceSchema(Organization.__table__, scope_column="id")
USERS = ResourceSchema(User.__table__, hidden=("password",))
REFRESH_TOKENS = ResourceSchema(
    RefreshToken.__table__,
    key="user_id",
    owner=Owner(User.__table__, "user_id"),
)
SUBSCRIPTIONS = ResourceSchema(Subscription.__table__, key="organization_id")

BRANDS = ResourceSchema(Brand.__table__)
CATEGORIES = ResourceSchema(Category.__table__)
MODELS = ResourceSchema(ItemModel.__table__)
KITS = ResourceSchema(Kit.__table__)
KIT_MODELS = ResourceSchema(
    KitModel.__table__,
    key="model_id",
    owner=Owner(Kit.__table__, "kit_id"),
)

ITEMS = ResourceSchema(Item.__table__, key="barcode")
CUSTOM_FIELDS = ResourceSchema(CustomField.__table__)
CUSTOM_FIELD_CATEGORIES = ResourceSchema(
    CustomFieldCategory.__table__,
    key="category_id",
    owner=Owner(CustomField.__table__, "custom_field_id"),
)
ITEM_CUSTOM_FIELDS = ResourceSchema(
    ItemCustomField.__table__,
    key="custom_field_id",
    owner=Owner(Item.__table__, "barcode", owner_column="barcode"),
)

EXTERNAL_RENTERS = ResourceSchema(ExternalRenter.__table__)
RENTALS = ResourceSchema(Rental.__table__)
RENTAL_ITEMS = ResourceSchema(
    RentalItem.__table__,
    key="barcode",
    owner=Owner(Rental.__table__, "rental_id"),
)
