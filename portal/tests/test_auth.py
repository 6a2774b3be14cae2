import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict

from portal.core.config import settings
from portal.models.user import User

pytestmark = pytest.mark.asyncio

def registration(email: str, password: str = "password123", confirm: str | None = None) -> Dict[str, str]:
    return {
        "email": email,
        "password": password,
        "confirm_password": confirm if confirm is not None else password,
        "name": "Nova Startup",
        "phone": "21987654321",
    }

async def test_register_startup(async_client: AsyncClient) -> None:
    """Testa o cadastro de uma startup."""
    response = await async_client.post("/api/v1/auth/register", json=registration("nova@example.com"))

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "nova@example.com"
    assert data["role"] == "startup"
    assert data["status"] == "pending"
    assert data["is_active"] is True
    assert "id" in data

async def test_register_admin_email_gets_admin_role(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/v1/auth/register", json=registration(settings.ADMIN_EMAIL))
    assert response.status_code == 201
    assert response.json()["role"] == "admin"

async def test_register_short_password(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/v1/auth/register", json=registration("curta@example.com", "12345"))
    assert response.status_code == 422
    assert "6 caracteres" in response.text

async def test_register_password_mismatch(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/v1/auth/register", json=registration("diferente@example.com", "password123", "password124")
    )
    assert response.status_code == 422
    assert "não coincidem" in response.text

async def test_register_existing_email(async_client: AsyncClient, test_user: User) -> None:
    """Testa tentativa de cadastro com email já existente."""
    response = await async_client.post("/api/v1/auth/register", json=registration(test_user.email))

    assert response.status_code == 400
    assert "já registrado" in response.json()["detail"].lower()

async def test_login_success(async_client: AsyncClient, test_user: User, test_redis) -> None:
    """Testa login bem-sucedido."""
    response = await async_client.post(
        "/api/v1/auth/login",
        data={"username": test_user.email, "password": "testpassword"}
    )

    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert test_user.last_login is not None
    assert any(key.startswith("refresh_token_jti:") for key in test_redis.data)

async def test_login_wrong_password(async_client: AsyncClient, test_user: User) -> None:
    """Testa login com senha incorreta."""
    response = await async_client.post(
        "/api/v1/auth/login",
        data={"username": test_user.email, "password": "wrongpassword"}
    )

    assert response.status_code == 401
    assert "incorretos" in response.json()["detail"].lower()

async def test_refresh_rotates_token(async_client: AsyncClient, test_user: User) -> None:
    login = await async_client.post(
        "/api/v1/auth/login",
        data={"username": test_user.email, "password": "testpassword"}
    )
    refresh_token = login.json()["refresh_token"]

    response = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 200
    assert response.json()["refresh_token"] != refresh_token

    # O token antigo foi revogado na rotação
    response = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 401

async def test_logout_revokes_refresh_token(
    async_client: AsyncClient, test_user: User, user_token_headers: Dict[str, str]
) -> None:
    login = await async_client.post(
        "/api/v1/auth/login",
        data={"username": test_user.email, "password": "testpassword"}
    )
    refresh_token = login.json()["refresh_token"]

    response = await async_client.post(
        "/api/v1/auth/logout", headers=user_token_headers, json={"refresh_token": refresh_token}
    )
    assert response.status_code == 200

    response = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 401

async def test_read_and_update_profile(
    async_client: AsyncClient, user_token_headers: Dict[str, str], db_session: AsyncSession
) -> None:
    response = await async_client.get("/api/v1/auth/me", headers=user_token_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "startup@example.com"

    response = await async_client.put(
        "/api/v1/auth/me",
        headers=user_token_headers,
        json={"name": "Acme Ltda", "cnpj": "12.345.678/0001-90", "role": "admin"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Acme Ltda"
    assert data["cnpj"] == "12.345.678/0001-90"
    # Papel não é alterável pelo perfil
    assert data["role"] == "startup"

async def test_protected_endpoint_without_token(async_client: AsyncClient) -> None:
    """Testa acesso a um endpoint protegido sem token."""
    response = await async_client.get("/api/v1/auth/me")

    assert response.status_code == 401

async def test_invalid_token(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/auth/me", headers={"Authorization": "Bearer invalido"})
    assert response.status_code == 401

async def test_update_profile_rejects_null_name(
    async_client: AsyncClient, user_token_headers: Dict[str, str]
) -> None:
    response = await async_client.put("/api/v1/auth/me", headers=user_token_headers, json={"name": None})
    assert response.status_code == 422

    response = await async_client.get("/api/v1/auth/me", headers=user_token_headers)
    assert response.json()["name"] == "Startup Teste"
