# tests/test_endpoint.py
"""
Generic endpoint tests
Tests: error translation, messages, create/update/delete behaviour
"""
import logging

import pytest

from stockpile.api.endpoint import DEFAULT_MESSAGES, choose_error, choose_message
from stockpile.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalServerError,
    NotFoundError,
    UnprocessableEntityError,
)
from stockpile.db.errors import (
    OVERLAP_MESSAGE,
    DataAccessError,
    DuplicateRowError,
    InvalidReferenceError,
    InvalidValueError,
    MissingDataError,
    OverlapError,
    RowNotFoundError,
    ScopeViolationError,
    UnknownColumnsError,
)
from stockpile.core.constants import SubscriptionStatus
from stockpile.db.repository import Repository
from tests.conftest import API, auth_headers, create_organization, create_user


class TestErrorTranslation:
    """Test mapping of data access errors onto HTTP errors"""

    @pytest.mark.parametrize(
        "error, expected, message",
        [
            (OverlapError(), ConflictError, OVERLAP_MESSAGE),
            (DuplicateRowError(), ConflictError, "already exists"),
            (UnknownColumnsError(["x"]), BadRequestError, "wrong fields in request body"),
            (InvalidValueError("id", "x"), BadRequestError, "wrong fields in request body"),
            (InvalidReferenceError(), BadRequestError, "wrong fields in request body"),
            (ScopeViolationError(), ForbiddenError, "cannot modify another organization"),
            (RowNotFoundError(), NotFoundError, "does not exist"),
            (MissingDataError(), UnprocessableEntityError, "request body is empty"),
            (DataAccessError("disk full"), InternalServerError, "something went wrong"),
        ],
    )
    def test_default_translation(self, error, expected, message):
        api_error = choose_error(error)

        assert type(api_error) is expected
        assert api_error.message == message

    def test_resource_message_overrides_default(self):
        api_error = choose_error(RowNotFoundError(), {"missing": "Brand does not exist"})

        assert api_error.message == "Brand does not exist"

    def test_unknown_key_falls_back(self):
        assert choose_message("nonsense", {}) == DEFAULT_MESSAGES["default"]


class TestEndpointBehaviour:
    """Test the generated CRUD routes"""

    async def test_create_returns_id_and_message(self, client, admin_headers):
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "created"
        assert isinstance(data["id"], int)

    async def test_create_assigns_caller_organization(self, client, admin, admin_headers):
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)
        brand_id = response.json()["id"]

        response = await client.get(f"{API}/brand/{brand_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["organization_id"] == admin.organization_id

    async def test_create_for_other_organization_forbidden(self, client, admin_headers, other_organization):
        response = await client.put(
            f"{API}/brand",
            json={"name": "Sony", "organization_id": other_organization.id},
            headers=admin_headers,
        )

        assert response.status_code == 403
        assert response.json() == {"code": "ForbiddenError", "message": "cannot modify another organization"}

    async def test_duplicate_is_conflict(self, client, admin_headers):
        await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)

        assert response.status_code == 409

    async def test_unknown_column_leaves_row_unchanged(self, client, admin_headers):
        """A rejected update writes nothing"""
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)
        brand_id = response.json()["id"]

        response = await client.put(
            f"{API}/brand/{brand_id}", json={"name": "Canon", "colour": "red"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "wrong fields in request body"

        response = await client.get(f"{API}/brand/{brand_id}", headers=admin_headers)
        assert response.json()["name"] == "Sony"

    async def test_empty_update_is_unprocessable(self, client, admin_headers):
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)
        brand_id = response.json()["id"]

        response = await client.put(f"{API}/brand/{brand_id}", json={}, headers=admin_headers)

        assert response.status_code == 422
        assert response.json()["message"] == "request body is empty"

    async def test_update_ignores_hypermedia_links(self, client, admin_headers):
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)
        brand_id = response.json()["id"]

        response = await client.put(
            f"{API}/brand/{brand_id}",
            json={"name": "Sony Pro", "_links": {"self": "/brand"}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Sony Pro"

    async def test_missing_row_message(self, client, admin_headers):
        response = await client.get(f"{API}/brand/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"code": "NotFoundError", "message": "Brand does not exist"}

    async def test_delete_then_delete_again(self, client, admin_headers):
        """Deleting an absent row answers 204 without a body"""
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)
        brand_id = response.json()["id"]

        response = await client.delete(f"{API}/brand/{brand_id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "deleted"}

        response = await client.delete(f"{API}/brand/{brand_id}", headers=admin_headers)
        assert response.status_code == 204
        assert response.content == b""

    async def test_invalid_json_body(self, client, admin_headers):
        response = await client.put(
            f"{API}/brand",
            content=b"{not json",
            headers={**admin_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400

    async def test_search_and_sort(self, client, admin_headers):
        for name in ("Sony", "Sigma", "Canon"):
            await client.put(f"{API}/brand", json={"name": name}, headers=admin_headers)

        response = await client.get(f"{API}/brand?search=s", headers=admin_headers)

        assert [brand["name"] for brand in response.json()["results"]] == ["Sigma", "Sony"]

    async def test_unknown_route_uses_error_shape(self, client):
        response = await client.get(f"{API}/nothing-here")

        assert response.status_code == 404
        assert response.json()["code"] == "NotFoundError"


class TestErrorResponses:
    """Test the status and body of each error an authenticated caller can get"""

    async def brand(self, client, headers, name="Sony"):
        response = await client.put(f"{API}/brand", json={"name": name}, headers=headers)
        return response.json()["id"]

    async def test_not_found(self, client, admin_headers):
        response = await client.get(f"{API}/brand/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"code": "NotFoundError", "message": "Brand does not exist"}

    async def test_conflict(self, client, admin_headers):
        await self.brand(client, admin_headers)
        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json() == {"code": "ConflictError", "message": "already exists"}

    async def test_bad_request(self, client, admin_headers):
        brand_id = await self.brand(client, admin_headers)
        response = await client.put(f"{API}/brand/{brand_id}", json={"colour": "red"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"code": "BadRequestError", "message": "wrong fields in request body"}

    async def test_unprocessable(self, client, admin_headers):
        brand_id = await self.brand(client, admin_headers)
        response = await client.put(f"{API}/brand/{brand_id}", json={}, headers=admin_headers)

        assert response.status_code == 422
        assert response.json() == {"code": "UnprocessableEntityError", "message": "request body is empty"}

    async def test_forbidden(self, client, admin, member_headers):
        response = await client.get(f"{API}/user/{admin.id}", headers=member_headers)

        assert response.status_code == 403
        assert response.json() == {"code": "ForbiddenError", "message": "Must be the same user or an administrator"}

    async def test_payment_required(self, client, db_session):
        organization = await create_organization(db_session, name="Lapsed", status=SubscriptionStatus.EXPIRED)
        user = await create_user(db_session, organization, "lapsed@example.com")

        response = await client.put(f"{API}/brand", json={"name": "Sony"}, headers=auth_headers(user))

        assert response.status_code == 402
        assert response.json() == {"code": "PaymentRequiredError", "message": "subscription is invalid"}

    async def test_unexpected_data_error(self, client, admin_headers, monkeypatch):
        async def broken(*args, **kwargs):
            raise DataAccessError("disk full")

        monkeypatch.setattr(Repository, "get", broken)
        response = await client.get(f"{API}/brand/1", headers=admin_headers)

        assert response.status_code == 500
        assert response.json() == {"code": "InternalServerError", "message": "something went wrong"}

    async def test_error_keeps_caller_in_log_context(self, client, admin, admin_headers, caplog):
        """A rolled back request still logs who made it"""
        logger = logging.getLogger("stockpile")
        logger.addHandler(caplog.handler)
        try:
            with caplog.at_level(logging.ERROR, logger="stockpile"):
                response = await client.get(f"{API}/brand/999", headers=admin_headers)
        finally:
            logger.removeHandler(caplog.handler)

        assert response.status_code == 404
        records = [record for record in caplog.records if getattr(record, "status_code", None) == 404]
        assert records
        assert records[0].user_id == admin.id
        assert records[0].organization_id == admin.organization_id
