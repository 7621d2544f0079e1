# stockpile/db/models/organization.py
from sqlalchemy import Column, Integer, String

from stockpile.db.base import BaseModel


class Organization(BaseModel):
    """Tenant owning every other row"""
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    # Payment provider registration reference
    billing_customer = Column(String(255), unique=True, nullable=True)
