# stockpile/db/models/user.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, event

from stockpile.core.constants import ROLE_NAMES, Role as RoleID
from stockpile.db.base import Base, BaseModel


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)


class User(BaseModel):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, default=int(RoleID.MEMBER))
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)

    # Nulled by the archive trigger
    email = Column(String(255), unique=True, nullable=True)
    password = Column(String(255), nullable=True)
    archived = Column(DateTime, nullable=True)


class RefreshToken(BaseModel):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    token = Column(String(255), nullable=False)


@event.listens_for(Role.__table__, "after_create")
def seed_roles(target, connection, **kw):
    connection.execute(
        target.insert(),
        [{"id": int(role), "name": name} for role, name in ROLE_NAMES.items()],
    )
