"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./stockpile-test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import timedelta
from typing import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import NullPool

from stockpile.core.constants import Role, SubscriptionStatus
from stockpile.core.security import create_access_token, hash_password
from stockpile.db.base import utcnow
from stockpile.db.database import Database
from stockpile.db.models import Organization, Subscription, User
from stockpile.main import create_app
from stockpile.services.payments import PeachPaymentsService, get_payments_service

API = "/api/v1"
PASSWORD = "TestPassword123!"
WEBHOOK_SECRET = "webhook-test-secret"


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Clean SQLite database with tables, triggers and lookup rows"""
    database = Database(f"sqlite:///{tmp_path / 'stockpile.db'}", poolclass=NullPool)
    await database.connect()
    await database.create_all()
    yield database
    await database.disconnect()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def app(database: Database):
    app = create_app(database)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def create_organization(
    session: AsyncSession,
    name: str = "Test Company",
    status: SubscriptionStatus = SubscriptionStatus.TRIAL,
    subscribed: bool = True,
) -> Organization:
    organization = Organization(name=name, billing_customer=f"customer-{name}")
    session.add(organization)
    await session.flush()
    if subscribed:
        session.add(
            Subscription(
                organization_id=organization.id,
                billing_customer=organization.billing_customer,
                valid=status in (SubscriptionStatus.TRIAL, SubscriptionStatus.VALID),
                status_id=int(status),
                status_until=utcnow() + timedelta(days=30),
            )
        )
    await session.commit()
    return organization


async def create_user(
    session: AsyncSession,
    organization: Organization,
    email: str,
    role: Role = Role.ADMIN,
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    user = User(
        organization_id=organization.id,
        role_id=int(role),
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=hash_password(PASSWORD),
    )
    session.add(user)
    await session.commit()
    return user


def auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = create_access_token(user.id, user.organization_id, user.role_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def organization(db_session: AsyncSession) -> Organization:
    return await create_organization(db_session)


@pytest.fixture
async def admin(db_session: AsyncSession, organization: Organization) -> User:
    return await create_user(db_session, organization, "admin@example.com", Role.ADMIN, "Ada", "Admin")


@pytest.fixture
async def member(db_session: AsyncSession, organization: Organization) -> User:
    return await create_user(db_session, organization, "member@example.com", Role.MEMBER, "Mel", "Member")


@pytest.fixture
def admin_headers(admin: User) -> dict:
    return auth_headers(admin)


@pytest.fixture
def member_headers(member: User) -> dict:
    return auth_headers(member)


@pytest.fixture
async def other_organization(db_session: AsyncSession) -> Organization:
    return await create_organization(db_session, name="Other Company")


@pytest.fixture
async def other_admin(db_session: AsyncSession, other_organization: Organization) -> User:
    return await create_user(db_session, other_organization, "other@example.com", Role.ADMIN, "Otto", "Other")


@pytest.fixture
def other_headers(other_admin: User) -> dict:
    return auth_headers(other_admin)


@pytest.fixture
def payment_requests() -> list:
    """Requests received by the fake payment provider"""
    return []


@pytest.fixture
def payment_responses() -> dict:
    """Registration responses of the fake payment provider, by checkout id"""
    return {
        "good-checkout": {
            "id": "registration-123",
            "result": {"code": "000.100.110", "description": "Request successfully processed"},
        },
        "declined-checkout": {
            "result": {"code": "800.100.151", "description": "transaction declined (invalid card)"},
        },
        "broken-checkout": {
            "result": {"code": "900.100.100", "description": "unexpected communication error with connector"},
        },
    }


@pytest.fixture
def payments(app, payment_requests: list, payment_responses: dict) -> PeachPaymentsService:
    """Payment service talking to an in-process fake provider"""

    def handler(request: httpx.Request) -> httpx.Response:
        payment_requests.append(request)
        checkout_id = request.url.path.split("/")[3]
        return httpx.Response(200, json=payment_responses.get(checkout_id, {"result": {"code": "900.000.000"}}))

    service = PeachPaymentsService(transport=httpx.MockTransport(handler))
    service.entity_id = "test-entity"
    service.access_token = "test-access-token"
    service.webhook_secret = WEBHOOK_SECRET
    app.dependency_overrides[get_payments_service] = lambda: service
    return service
