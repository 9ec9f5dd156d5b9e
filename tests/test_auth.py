import asyncio

import pytest
from httpx import AsyncClient

from app.auth.security import principal_from_token, token_for_principal
from app.auth.services import SessionCoordinator
from app.auth.store import BcryptCredentialVerifier
from app.core.enums import FailureCategory, FailureCode, UserRole
from app.core.exceptions import AuthFailure, CollaboratorFailure


async def test_authenticate_returns_principal_snapshot(identity_store, users, password) -> None:
    coordinator = SessionCoordinator(identity_store, BcryptCredentialVerifier())
    principal = await coordinator.authenticate("t1", password)

    assert principal.user_id == users["t1"].id
    assert principal.role is UserRole.TEACHER
    stored = await identity_store.find_by_id(users["t1"].id)
    assert stored.last_login_at is not None


async def test_authenticate_distinguishes_failures_internally(identity_store, users, password) -> None:
    coordinator = SessionCoordinator(identity_store, BcryptCredentialVerifier(), record_last_login=False)

    with pytest.raises(AuthFailure) as exc:
        await coordinator.authenticate("nobody", password)
    assert exc.value.code is FailureCode.UNKNOWN_USER

    with pytest.raises(AuthFailure) as exc:
        await coordinator.authenticate("s1", "wrong-password")
    assert exc.value.code is FailureCode.BAD_CREDENTIAL
    assert (await identity_store.find_by_id(users["s1"].id)).last_login_at is None


async def test_authenticate_merges_failures_at_boundary(school, users, password) -> None:
    unknown = await school.authenticate("nobody", password)
    wrong = await school.authenticate("s1", "wrong-password")

    assert not unknown.ok and not wrong.ok
    assert unknown.failure == wrong.failure
    assert unknown.failure.category is FailureCategory.AUTH
    assert unknown.failure.code is FailureCode.AUTHENTICATION_FAILED
    assert unknown.failure.retryable is False


class _HangingVerifier:
    async def verify(self, plaintext: str, password_hash: str) -> bool:
        await asyncio.sleep(10)
        return True

    async def hash(self, plaintext: str) -> str:
        return plaintext


async def test_verifier_timeout_is_not_a_denial(identity_store, users, password) -> None:
    coordinator = SessionCoordinator(identity_store, _HangingVerifier(), collaborator_timeout=0.05)
    with pytest.raises(CollaboratorFailure) as exc:
        await coordinator.authenticate("s1", password)
    assert exc.value.code is FailureCode.TIMEOUT
    assert exc.value.retryable


async def test_token_round_trip_keeps_role(principals) -> None:
    token = token_for_principal(principals["s2"])
    assert principal_from_token(token) == principals["s2"]
    assert principal_from_token("not-a-token") is None


async def test_register_creates_student(client: AsyncClient) -> None:
    payload = {"username": "newkid", "password": "StrongPass123", "confirm_password": "StrongPass123"}
    response = await client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 201
    assert response.json()["role"] == "STUDENT"

    again = await client.post("/api/v1/auth/register", json=payload)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "UsernameTaken"


async def test_register_rejects_password_mismatch(client: AsyncClient) -> None:
    payload = {"username": "newkid", "password": "StrongPass123", "confirm_password": "StrongPass124"}
    response = await client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 422


async def test_login_success(client: AsyncClient, users, password) -> None:
    response = await client.post("/api/v1/auth/login", json={"username": "t1", "password": password})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "TEACHER"
    assert data["user"]["id"] == str(users["t1"].id)

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json() == {"user_id": str(users["t1"].id), "role": "TEACHER"}


async def test_login_failures_look_identical(client: AsyncClient, users, password) -> None:
    unknown = await client.post("/api/v1/auth/login", json={"username": "ghost", "password": password})
    wrong = await client.post("/api/v1/auth/login", json={"username": "s1", "password": "nope"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()


async def test_login_oauth_form(client: AsyncClient, users, password) -> None:
    response = await client.post("/api/v1/auth/login-oauth", data={"username": "s1", "password": password})
    assert response.status_code == 200
    assert principal_from_token(response.json()["access_token"]).user_id == users["s1"].id


async def test_me_requires_valid_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


async def test_login_ignores_surrounding_whitespace(client: AsyncClient) -> None:
    payload = {"username": "  padded  ", "password": "Password123", "confirm_password": "Password123"}
    registered = await client.post("/api/v1/auth/register", json=payload)
    assert registered.json()["username"] == "padded"

    json_login = await client.post("/api/v1/auth/login", json={"username": "  padded  ", "password": "Password123"})
    assert json_login.status_code == 200
    assert json_login.json()["user"]["username"] == "padded"

    form_login = await client.post("/api/v1/auth/login-oauth", data={"username": "padded ", "password": "Password123"})
    assert form_login.status_code == 200


async def test_token_of_deleted_user_is_rejected(client: AsyncClient, users, login) -> None:
    admin = await login("admin")
    student = await login("s3")
    assert (await client.get("/api/v1/auth/me", headers=student)).status_code == 200

    assert (await client.delete(f"/api/v1/users/{users['s3'].id}", headers=admin)).status_code == 204

    response = await client.get("/api/v1/auth/me", headers=student)
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
