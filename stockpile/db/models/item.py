# stockpile/db/models/item.py
from sqlalchemy import Column, ForeignKey, Integer, String, Text

from stockpile.db.base import BaseModel


class Item(BaseModel):
    """A physical, barcoded piece of inventory"""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    barcode = Column(String(255), nullable=False, unique=True)
    model_id = Column(Integer, ForeignKey("models.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
