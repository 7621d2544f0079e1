# tests/test_billing.py
"""
Billing tests
Tests: signup through the payment provider, webhook signatures and status mapping
"""
import hashlib
import hmac
import json

import pytest
from sqlalchemy import select

from stockpile.core.constants import SubscriptionStatus
from stockpile.db.models import Organization, Subscription, User
from tests.conftest import API, WEBHOOK_SECRET


def signup(token="good-checkout", email="founder@example.com"):
    return {
        "token": token,
        "organization": {"name": "Rental House", "email": "office@example.com"},
        "user": {"first_name": "Fay", "last_name": "Founder", "email": email, "password": "Founder123!"},
    }


def signed(payload: dict):
    body = json.dumps(payload).encode()
    signature = hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()
    return body, {"X-Signature": signature, "Content-Type": "application/json"}


class TestPaymentsService:
    """Test the payment provider client"""

    async def test_registration(self, payments, payment_requests):
        registration = await payments.get_registration("good-checkout")

        assert registration["registration_id"] == "registration-123"
        request = payment_requests[0]
        assert request.url.path == "/v1/checkouts/good-checkout/registration"
        assert request.url.params["entityId"] == "test-entity"
        assert request.headers["Authorization"] == "Bearer test-access-token"

    def test_signature(self, payments):
        body, headers = signed({"customer": "abc"})

        assert payments.verify_webhook_signature(body, headers["X-Signature"])
        assert not payments.verify_webhook_signature(body, "0" * 64)


class TestSignup:
    """Test organization signup"""

    async def test_signup_creates_trial(self, client, payments, db_session):
        response = await client.post(f"{API}/subscription", json=signup())

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Subscription created"

        organization = await db_session.get(Organization, data["organization_id"])
        assert organization.billing_customer == "registration-123"

        subscription = await db_session.scalar(
            select(Subscription).where(Subscription.organization_id == data["organization_id"])
        )
        assert subscription.status_id == SubscriptionStatus.TRIAL
        assert subscription.valid
        assert subscription.status_until > organization.created_at

        user = await db_session.get(User, data["user_id"])
        assert user.role_id == 1
        assert user.password != "Founder123!"

    async def test_founder_can_log_in_and_write(self, client, payments):
        await client.post(f"{API}/subscription", json=signup())

        login = await client.post(f"{API}/auth", json={"email": "founder@example.com", "password": "Founder123!"})
        headers = {"Authorization": f"Bearer {login.json()['token']}"}

        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=headers)
        assert response.status_code == 201

    async def test_declined_card(self, client, payments, db_session):
        response = await client.post(f"{API}/subscription", json=signup("declined-checkout"))

        assert response.status_code == 402
        assert response.json()["message"] == "transaction declined (invalid card)"
        assert (await db_session.execute(select(Organization))).first() is None

    async def test_provider_failure(self, client, payments):
        response = await client.post(f"{API}/subscription", json=signup("broken-checkout"))

        assert response.status_code == 500

    @pytest.mark.parametrize("field", ["organization", "user"])
    async def test_missing_parts(self, client, payments, field):
        body = signup()
        del body[field]

        response = await client.post(f"{API}/subscription", json=body)

        assert response.status_code == 400
        assert response.json()["message"] == "Missing user or organization"

    async def test_duplicate_founder_email(self, client, payments, admin, db_session):
        response = await client.post(f"{API}/subscription", json=signup(email=admin.email))

        assert response.status_code == 409
        organizations = (await db_session.execute(select(Organization.id))).all()
        assert len(organizations) == 1

    async def test_admin_reads_subscription(self, client, admin, admin_headers):
        response = await client.get(f"{API}/subscription/{admin.organization_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "TRIAL"


class TestWebhook:
    """Test subscription status changes from the payment provider"""

    @pytest.mark.parametrize(
        "status, expected, valid",
        [
            ("trialing", SubscriptionStatus.TRIAL, True),
            ("active", SubscriptionStatus.VALID, True),
            ("past_due", SubscriptionStatus.EXPIRED, False),
            ("unpaid", SubscriptionStatus.EXPIRED, False),
            ("canceled", SubscriptionStatus.CANCELED, False),
            (None, SubscriptionStatus.CANCELED, False),
        ],
    )
    async def test_status_mapping(self, client, payments, organization, db_session, status, expected, valid):
        body, headers = signed(
            {"customer": organization.billing_customer, "status": status, "current_period_end": 1893456000}
        )

        response = await client.post(f"{API}/subscription/hook", content=body, headers=headers)

        assert response.status_code == 200
        assert response.json() == {}
        subscription = await db_session.scalar(
            select(Subscription).where(Subscription.organization_id == organization.id)
            .execution_options(populate_existing=True)
        )
        assert subscription.status_id == expected
        assert subscription.valid is valid
        assert (subscription.status_until is not None) is valid

    async def test_invalid_signature(self, client, payments, organization):
        body, headers = signed({"customer": organization.billing_customer, "status": "active"})

        response = await client.post(
            f"{API}/subscription/hook", content=body, headers={**headers, "X-Signature": "forged"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "invalid webhook signature"

    async def test_missing_customer(self, client, payments):
        body, headers = signed({"status": "active"})

        response = await client.post(f"{API}/subscription/hook", content=body, headers=headers)

        assert response.status_code == 400
        assert response.json()["message"] == "could not get customer from webhook request"

    async def test_unknown_customer(self, client, payments):
        body, headers = signed({"customer": "nobody", "status": "active"})

        response = await client.post(f"{API}/subscription/hook", content=body, headers=headers)

        assert response.status_code == 404

    async def test_cancellation_blocks_writes(self, client, payments, organization, admin_headers):
        body, headers = signed({"customer": organization.billing_customer, "status": "canceled"})
        await client.post(f"{API}/subscription/hook", content=body, headers=headers)

        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)

        assert response.status_code == 402
