# stockpile/db/models/rental.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from stockpile.db.base import BaseModel


class ExternalRenter(BaseModel):
    """Contact outside the organization who can rent items"""
    __tablename__ = "external_renters"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)


class Rental(BaseModel):
    __tablename__ = "rentals"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_rentals_dates"),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    external_renter_id = Column(Integer, ForeignKey("external_renters.id", ondelete="SET NULL"), nullable=True, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    is_reservation = Column(Boolean, nullable=False, default=False)


class RentalItem(BaseModel):
    """An item taken out on a rental; active until ``returned`` is set"""
    __tablename__ = "rental_items"
    __table_args__ = (UniqueConstraint("rental_id", "barcode"),)

    id = Column(Integer, primary_key=True)
    rental_id = Column(Integer, ForeignKey("rentals.id", ondelete="CASCADE"), nullable=False, index=True)
    barcode = Column(
        String(255),
        ForeignKey("items.barcode", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    returned = Column(DateTime, nullable=True)
