# stockpile/db/models/subscription.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, event

from stockpile.core.constants import SubscriptionStatus as StatusID
from stockpile.db.base import Base, BaseModel


class SubscriptionStatus(Base):
    __tablename__ = "subscription_statuses"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)


class Subscription(BaseModel):
    """Billing state of an organization, mirrored from payment webhooks"""
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    billing_customer = Column(String(255), unique=True, nullable=True)
    valid = Column(Boolean, nullable=False, default=False)
    status_id = Column(Integer, ForeignKey("subscription_statuses.id"), nullable=False, default=int(StatusID.TRIAL))
    status_until = Column(DateTime, nullable=True)


@event.listens_for(SubscriptionStatus.__table__, "after_create")
def seed_statuses(target, connection, **kw):
    connection.execute(
        target.insert(),
        [{"id": int(status), "name": status.name} for status in StatusID],
    )
