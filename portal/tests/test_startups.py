import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict

from portal.models.document import UploadedDocument
from portal.models.document_config import DocumentConfig
from portal.models.user import User

pytestmark = pytest.mark.asyncio

def add_upload(db: AsyncSession, user: User, category: str, name: str) -> None:
    db.add(UploadedDocument(
        startup_id=user.id,
        category=category,
        name=name,
        file_url=f"/files/{name}",
        file_path=f"{user.id}/{category}/{name}.pdf",
        file_size=10,
        file_type="application/pdf",
        original_filename=f"{name}.pdf",
        required=True,
    ))

async def test_my_progress(
    async_client: AsyncClient,
    db_session: AsyncSession,
    user_token_headers: Dict[str, str],
    default_config: DocumentConfig,
    test_user: User,
) -> None:
    add_upload(db_session, test_user, "juridico", "contrato-social")
    await db_session.commit()

    response = await async_client.get("/api/v1/progress/me", headers=user_token_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["config_id"] == "default"
    assert data["percent"] == 50
    assert data["can_submit"] is False
    assert data["missing_items"] == ["Financeiro: DRE"]

async def test_progress_without_default_config_is_zero(
    async_client: AsyncClient, user_token_headers: Dict[str, str]
) -> None:
    response = await async_client.get("/api/v1/progress/me", headers=user_token_headers)
    assert response.status_code == 200
    assert response.json()["percent"] == 0
    assert response.json()["categories"] == []

async def test_submit_requires_all_required_documents(
    async_client: AsyncClient,
    db_session: AsyncSession,
    user_token_headers: Dict[str, str],
    default_config: DocumentConfig,
    test_user: User,
) -> None:
    add_upload(db_session, test_user, "juridico", "contrato-social")
    await db_session.commit()

    response = await async_client.post("/api/v1/progress/me/submit", headers=user_token_headers)
    assert response.status_code == 400

    add_upload(db_session, test_user, "financeiro", "dre")
    await db_session.commit()

    response = await async_client.post("/api/v1/progress/me/submit", headers=user_token_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["completion_date"] is not None

async def test_list_startups_with_progress(
    async_client: AsyncClient,
    db_session: AsyncSession,
    admin_token_headers: Dict[str, str],
    default_config: DocumentConfig,
    test_user: User,
    make_startup,
) -> None:
    await make_startup("andamento@example.com", status="in_progress")
    add_upload(db_session, test_user, "juridico", "contrato-social")
    add_upload(db_session, test_user, "financeiro", "dre")
    await db_session.commit()

    response = await async_client.get("/api/v1/startups", headers=admin_token_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    progress = {item["email"]: item["progress"] for item in data["items"]}
    assert progress == {"startup@example.com": 100, "andamento@example.com": 0}

    response = await async_client.get("/api/v1/startups?status_filter=in_progress", headers=admin_token_headers)
    assert [item["email"] for item in response.json()["items"]] == ["andamento@example.com"]

async def test_startup_detail_and_update(
    async_client: AsyncClient,
    admin_token_headers: Dict[str, str],
    default_config: DocumentConfig,
    test_user: User,
) -> None:
    response = await async_client.get(f"/api/v1/startups/{test_user.id}", headers=admin_token_headers)
    assert response.status_code == 200
    assert response.json()["profile"]["email"] == test_user.email
    assert response.json()["progress"]["percent"] == 0

    response = await async_client.patch(
        f"/api/v1/startups/{test_user.id}",
        headers=admin_token_headers,
        json={"status": "under_review", "whatsapp_group_id": "120363@g.us", "document_config_id": "outra"},
    )
    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["status"] == "under_review"
    assert profile["whatsapp_group_id"] == "120363@g.us"
    # Configuração inexistente: progresso zerado
    assert response.json()["progress"]["percent"] == 0
    assert response.json()["progress"]["config_id"] is None

async def test_admin_is_not_a_startup(
    async_client: AsyncClient, admin_token_headers: Dict[str, str], test_admin: User
) -> None:
    response = await async_client.get(f"/api/v1/startups/{test_admin.id}", headers=admin_token_headers)
    assert response.status_code == 404

# Templates de mensagem

async def test_templates_bootstrap_and_update(
    async_client: AsyncClient, admin_token_headers: Dict[str, str]
) -> None:
    response = await async_client.get("/api/v1/message-templates", headers=admin_token_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 5

    template = next(t for t in response.json()["items"] if t["type"] == "follow_up")
    response = await async_client.patch(
        f"/api/v1/message-templates/{template['id']}",
        headers=admin_token_headers,
        json={"content": "Oi {name}, faltam: {missingDocs}"},
    )
    assert response.status_code == 200
    assert response.json()["content"] == "Oi {name}, faltam: {missingDocs}"
    assert response.json()["type"] == "follow_up"

async def test_template_preview(
    async_client: AsyncClient,
    admin_token_headers: Dict[str, str],
    default_config: DocumentConfig,
    test_user: User,
) -> None:
    response = await async_client.post(
        "/api/v1/message-templates",
        headers=admin_token_headers,
        json={"name": "Status", "type": "reminder", "content": "{name}: {progress} ({missingDocs})"},
    )
    assert response.status_code == 201
    template_id = response.json()["id"]

    response = await async_client.get(
        f"/api/v1/message-templates/{template_id}/preview/{test_user.id}", headers=admin_token_headers
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Startup Teste: 0% (Jurídico: Contrato social, Financeiro: DRE)"

async def test_unknown_template_returns_404(
    async_client: AsyncClient, admin_token_headers: Dict[str, str]
) -> None:
    response = await async_client.get(
        "/api/v1/message-templates/00000000-0000-0000-0000-000000000000", headers=admin_token_headers
    )
    assert response.status_code == 404

# Feed de eventos e health

async def test_events_feed(async_client: AsyncClient, admin_token_headers: Dict[str, str], event_bus) -> None:
    event = event_bus.error("Falha", "Z-API indisponível")

    response = await async_client.get("/api/v1/events", headers=admin_token_headers)
    assert response.status_code == 200
    assert response.json()["unread"] == 1
    assert response.json()["items"][0]["persistent"] is True

    response = await async_client.post(f"/api/v1/events/{event.id}/read", headers=admin_token_headers)
    assert response.status_code == 204
    assert event_bus.unread_count() == 0

    response = await async_client.delete(f"/api/v1/events/{event.id}", headers=admin_token_headers)
    assert response.status_code == 204
    response = await async_client.delete(f"/api/v1/events/{event.id}", headers=admin_token_headers)
    assert response.status_code == 404

async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "online"
    assert response.json()["events"] == "running"

async def test_update_startup_rejects_null_name(
    async_client: AsyncClient, admin_token_headers: Dict[str, str], test_user: User
) -> None:
    for field in ("name", "status"):
        response = await async_client.patch(
            f"/api/v1/startups/{test_user.id}", headers=admin_token_headers, json={field: None}
        )
        assert response.status_code == 422

    response = await async_client.get(f"/api/v1/startups/{test_user.id}", headers=admin_token_headers)
    assert response.json()["profile"]["name"] == "Startup Teste"
