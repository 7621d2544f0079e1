# stockpile/db/models/__init__.py
from stockpile.db.models.organization import Organization
from stockpile.db.models.user import Role, User, RefreshToken
from stockpile.db.models.subscription import SubscriptionStatus, Subscription
from stockpile.db.models.catalog import Brand, Category, ItemModel, Kit, KitModel
from stockpile.db.models.item import Item
from stockpile.db.models.custom_field import FieldType, CustomField, CustomFieldCategory, ItemCustomField
from stockpile.db.models.rental import ExternalRenter, Rental, RentalItem

# Storage-level triggers attach to the tables above
from stockpile.db import triggers  # noqa: F401

__all__ = [
    "Organization",
    "Role",
    "User",
    "RefreshToken",
    "SubscriptionStatus",
    "Subscription",
    "Brand",
    "Category",
    "ItemModel",
    "Kit",
    "KitModel",
    "Item",
    "FieldType",
    "CustomField",
    "CustomFieldCategory",
    "ItemCustomField",
    "ExternalRenter",
    "Rental",
    "RentalItem",
]
