# tests/test_auth.py
"""
Authentication and authorization tests
Tests: login, refresh, registration, token verification, roles
"""
from datetime import timedelta

from stockpile.core.security import create_access_token, decode_token, hash_password, verify_password
from tests.conftest import API, PASSWORD


class TestSecurity:
    """Test token and password helpers"""

    def test_password_hashing(self):
        hashed = hash_password("hunter22")

        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_hash_never_verifies(self):
        assert not verify_password("anything", None)

    def test_token_claims(self):
        payload = decode_token(create_access_token(7, 3, 1))

        assert payload["sub"] == "7"
        assert payload["organization_id"] == 3
        assert payload["role_id"] == 1
        assert payload["exp"] > payload["iat"]


class TestAuthentication:
    """Test authentication flows"""

    async def test_login_success(self, client, admin):
        response = await client.post(f"{API}/auth", json={"email": admin.email, "password": PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == admin.id
        assert data["message"] == "Authentication successful"
        assert decode_token(data["token"])["sub"] == str(admin.id)
        assert data["refresh_token"].startswith(str(admin.id))

    async def test_login_wrong_password(self, client, admin):
        response = await client.post(f"{API}/auth", json={"email": admin.email, "password": "WrongPassword123!"})

        assert response.status_code == 401
        assert response.json()["message"] == "Email and password combination is incorrect"

    async def test_login_nonexistent_user(self, client):
        response = await client.post(f"{API}/auth", json={"email": "nobody@example.com", "password": PASSWORD})

        assert response.status_code == 401

    async def test_login_missing_fields(self, client):
        response = await client.post(f"{API}/auth", json={"email": "nobody@example.com"})

        assert response.status_code == 400

    async def test_second_login_replaces_refresh_token(self, client, admin):
        first = await client.post(f"{API}/auth", json={"email": admin.email, "password": PASSWORD})
        second = await client.post(f"{API}/auth", json={"email": admin.email, "password": PASSWORD})

        old_token = first.json()["refresh_token"]
        assert old_token != second.json()["refresh_token"]

        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": old_token, "user_id": admin.id})
        assert response.status_code == 401

    async def test_token_refresh(self, client, admin):
        login = await client.post(f"{API}/auth", json={"email": admin.email, "password": PASSWORD})

        response = await client.post(
            f"{API}/auth/refresh",
            json={"refresh_token": login.json()["refresh_token"], "user_id": admin.id},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Token refreshed successfully"
        assert decode_token(response.json()["token"])["organization_id"] == admin.organization_id

    async def test_refresh_unknown_user(self, client):
        response = await client.post(f"{API}/auth/refresh", json={"refresh_token": "abc", "user_id": 999})

        assert response.status_code == 401
        assert response.json()["message"] == "Refresh token is invalid"


class TestAccessControl:
    """Test tokens and roles on protected routes"""

    async def test_missing_token(self, client):
        response = await client.get(f"{API}/brand")

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    async def test_invalid_token(self, client):
        response = await client.get(f"{API}/brand", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401

    async def test_expired_token(self, client, admin):
        token = create_access_token(admin.id, admin.organization_id, admin.role_id, timedelta(minutes=-1))

        response = await client.get(f"{API}/brand", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_verify(self, client, admin_headers):
        response = await client.head(f"{API}/auth/verify", headers=admin_headers)

        assert response.status_code == 200

    async def test_register_requires_admin(self, client, member_headers):
        response = await client.post(
            f"{API}/auth/register",
            json={"first_name": "New", "last_name": "User", "email": "new@example.com", "password": "pw123456"},
            headers=member_headers,
        )

        assert response.status_code == 403

    async def test_register_user(self, client, admin, admin_headers):
        response = await client.post(
            f"{API}/auth/register",
            json={"first_name": "New", "last_name": "User", "email": "new@example.com", "password": "pw123456"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["organization_id"] == admin.organization_id
        assert data["email"] == "new@example.com"
        assert "password" not in data

        login = await client.post(f"{API}/auth", json={"email": "new@example.com", "password": "pw123456"})
        assert login.status_code == 200

    async def test_register_missing_fields(self, client, admin_headers):
        response = await client.post(f"{API}/auth/register", json={"first_name": "New"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing")

    async def test_register_duplicate_email(self, client, admin, admin_headers):
        response = await client.post(
            f"{API}/auth/register",
            json={"first_name": "Dup", "last_name": "User", "email": admin.email, "password": "pw123456"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "A user with this email already exists"
