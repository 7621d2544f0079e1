# stockpile/db/models/catalog.py
from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from stockpile.db.base import Base, BaseModel


class Brand(BaseModel):
    __tablename__ = "brands"
    __table_args__ = (UniqueConstraint("organization_id", "name"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class Category(BaseModel):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("organization_id", "name"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class ItemModel(BaseModel):
    """A product model made by a brand"""
    __tablename__ = "models"
    __table_args__ = (UniqueConstraint("organization_id", "brand_id", "name"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class Kit(BaseModel):
    __tablename__ = "kits"
    __table_args__ = (UniqueConstraint("organization_id", "name"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)


class KitModel(Base):
    __tablename__ = "kit_models"
    __table_args__ = (UniqueConstraint("kit_id", "model_id"),)

    id = Column(Integer, primary_key=True)
    kit_id = Column(Integer, ForeignKey("kits.id", ondelete="CASCADE"), nullable=False, index=True)
    model_id = Column(Integer, ForeignKey("models.id", ondelete="CASCADE"), nullable=False, index=True)
