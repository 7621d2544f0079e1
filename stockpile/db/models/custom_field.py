# stockpile/db/models/custom_field.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, event

from stockpile.core.constants import FieldType as FieldTypeID
from stockpile.db.base import Base, BaseModel, utcnow


class FieldType(Base):
    __tablename__ = "field_types"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)


class CustomField(BaseModel):
    __tablename__ = "custom_fields"
    __table_args__ = (UniqueConstraint("organization_id", "name"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    field_type_id = Column(Integer, ForeignKey("field_types.id"), nullable=False, default=int(FieldTypeID.TEXT))
    show_timestamp = Column(Boolean, nullable=False, default=True)


class CustomFieldCategory(Base):
    """Restricts a custom field to items of a category"""
    __tablename__ = "custom_field_categories"
    __table_args__ = (UniqueConstraint("custom_field_id", "category_id"),)

    id = Column(Integer, primary_key=True)
    custom_field_id = Column(Integer, ForeignKey("custom_fields.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)


class ItemCustomField(Base):
    """Value of a custom field for one item"""
    __tablename__ = "item_custom_fields"
    __table_args__ = (UniqueConstraint("barcode", "custom_field_id"),)

    id = Column(Integer, primary_key=True)
    barcode = Column(
        String(255),
        ForeignKey("items.barcode", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    custom_field_id = Column(Integer, ForeignKey("custom_fields.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


@event.listens_for(FieldType.__table__, "after_create")
def seed_field_types(target, connection, **kw):
    connection.execute(
        target.insert(),
        [{"id": int(field_type), "name": field_type.name.lower()} for field_type in FieldTypeID],
    )
