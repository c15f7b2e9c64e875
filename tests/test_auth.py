"""
Auth endpoint tests — registration, login, enumeration resistance and the
bearer-token dependency that guards article mutations.
"""
import time
import uuid

import jwt
import pytest
from httpx import AsyncClient
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from articles_api.config import settings
from articles_api.models import User
from conftest import bearer, register


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_token_and_public_user(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "new@example.com",
        "password": "StrongPass123!",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["accessToken"]
    assert body["user"]["email"] == "new@example.com"
    assert set(body["user"]) == {"id", "email", "createdAt"}

    claims = jwt.decode(body["accessToken"], settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert claims["sub"] == body["user"]["id"]
    assert claims["email"] == "new@example.com"
    assert claims["exp"] > claims["iat"]


@pytest.mark.asyncio
async def test_register_duplicate_email_returns_409(async_client: AsyncClient):
    await register(async_client, "dup@example.com")
    resp = await async_client.post("/api/v1/auth/register", json={
        "email": "dup@example.com",
        "password": "another123",
    })
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Email already in use"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"email": "not-an-email", "password": "secret123"},
    {"email": "short@example.com", "password": "12345"},
    {"email": "missing-password@example.com"},
])
async def test_register_rejects_bad_input(async_client: AsyncClient, payload: dict):
    resp = await async_client.post("/api/v1/auth/register", json=payload)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_password_hash_is_not_stored_in_plaintext(async_client: AsyncClient, db_session: AsyncSession):
    await register(async_client, "hashme@example.com", "plaintext-pw")
    password_hash = (await db_session.execute(
        select(User.password_hash).where(User.email == "hashme@example.com")
    )).scalar_one()
    assert password_hash != "plaintext-pw"
    assert password_hash.startswith("$2")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_success(async_client: AsyncClient):
    _, user = await register(async_client, "login@example.com", "password123")
    resp = await async_client.post("/api/v1/auth/login", json={
        "email": "login@example.com",
        "password": "password123",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == user
    assert body["accessToken"]


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(async_client: AsyncClient):
    """Unknown email and wrong password produce the same 401 response."""
    await register(async_client, "exists@example.com", "password123")

    unknown = await async_client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "password123",
    })
    wrong_pw = await async_client.post("/api/v1/auth/login", json={
        "email": "exists@example.com",
        "password": "wrong-password",
    })
    assert unknown.status_code == wrong_pw.status_code == 401
    assert unknown.json() == wrong_pw.json() == {"detail": "Invalid credentials"}


# ---------------------------------------------------------------------------
# Current user / bearer dependency
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_me_returns_identity_from_token(async_client: AsyncClient):
    token, user = await register(async_client, "me@example.com")
    resp = await async_client.get("/api/v1/auth/me", headers=bearer(token))
    assert resp.status_code == 200
    assert resp.json() == {"id": user["id"], "email": "me@example.com"}


@pytest.mark.asyncio
async def test_me_without_token_returns_401(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_with_garbage_token_returns_401(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/auth/me", headers=bearer("not.a.jwt"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_with_expired_token_returns_401(async_client: AsyncClient):
    _, user = await register(async_client, "expired@example.com")
    now = int(time.time())
    token = jwt.encode(
        {"sub": user["id"], "email": user["email"], "iat": now - 7200, "exp": now - 3600},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    resp = await async_client.get("/api/v1/auth/me", headers=bearer(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired"


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_rejected(async_client: AsyncClient):
    _, user = await register(async_client, "forged@example.com")
    token = jwt.encode(
        {"sub": user["id"], "email": user["email"], "exp": int(time.time()) + 60},
        "some-other-secret",
        algorithm="HS256",
    )
    resp = await async_client.get("/api/v1/auth/me", headers=bearer(token))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_user_is_rejected(async_client: AsyncClient):
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "email": "ghost@example.com", "exp": int(time.time()) + 60},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    resp = await async_client.get("/api/v1/auth/me", headers=bearer(token))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_of_deleted_user_is_rejected(async_client: AsyncClient, db_session: AsyncSession):
    token, user = await register(async_client, "gone@example.com")
    await db_session.execute(delete(User).where(User.email == "gone@example.com"))
    await db_session.commit()

    resp = await async_client.get("/api/v1/auth/me", headers=bearer(token))
    assert resp.status_code == 401
