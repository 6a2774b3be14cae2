import json

import httpx
import pytest

from portal.core.config import settings
from portal.services import zapi
from portal.services.zapi import (
    GatewayError,
    GatewayNotConfiguredError,
    ZAPIClient,
    load_gateway_config,
    mask_token,
    parse_groups_payload,
    validate_phone_number,
)

BASE_URL = "https://zapi.test/instances/abc/token/xyz"

def use_transport(monkeypatch, handler):
    """Faz o ZAPIClient usar um transporte httpx falso."""
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(zapi, "AsyncClient", factory)

@pytest.mark.parametrize("raw,expected", [
    ("(11) 98765-4321", "5511987654321"),
    ("2198765432", "55112198765432"),
    ("21987654321", "5521987654321"),
    ("+55 21 98765-4321", "5521987654321"),
    ("5511987654321", "5511987654321"),
])
def test_validate_phone_number(raw: str, expected: str) -> None:
    assert validate_phone_number(raw) == expected

def test_parse_groups_payload_formats() -> None:
    as_list = parse_groups_payload([{"id": "1@g.us", "name": "Grupo", "participants": [{}, {}]}])
    assert as_list[0].participants == 2

    nested = parse_groups_payload({"data": [{"groupId": "2@g.us", "subject": "Outro", "participantsCount": 7}]})
    assert nested[0].id == "2@g.us"
    assert nested[0].name == "Outro"
    assert nested[0].participants == 7

    unnamed = parse_groups_payload({"groups": [{"chatId": "3@g.us"}]})
    assert unnamed[0].name == "Grupo sem nome"

    assert parse_groups_payload({"unexpected": True}) is None
    assert parse_groups_payload("texto") is None

def test_mask_token() -> None:
    assert mask_token("abcdef123456") == "********3456"
    assert mask_token("abc") == "***"
    assert mask_token(None) is None

@pytest.mark.asyncio
async def test_send_text_success(monkeypatch) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["token"] = request.headers.get("client-token")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"zaapId": "z1", "messageId": "m1"})

    use_transport(monkeypatch, handler)
    result = await ZAPIClient(BASE_URL + "/", "segredo").send_text("5511987654321", "Olá")

    assert result.success
    assert result.message_id == "m1"
    assert captured["url"] == f"{BASE_URL}/send-text"
    assert captured["token"] == "segredo"
    assert captured["body"] == {"phone": "5511987654321", "message": "Olá"}

@pytest.mark.asyncio
async def test_send_text_http_error_is_a_failed_result(monkeypatch) -> None:
    use_transport(monkeypatch, lambda request: httpx.Response(500, json={"error": "boom"}))
    result = await ZAPIClient(BASE_URL, "segredo").send_text("5511987654321", "Olá")
    assert not result.success
    assert result.error

@pytest.mark.asyncio
async def test_send_text_network_error_is_a_failed_result(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("sem conexão", request=request)

    use_transport(monkeypatch, handler)
    result = await ZAPIClient(BASE_URL, "segredo").send_text("5511987654321", "Olá")
    assert not result.success
    assert "sem conexão" in result.error

@pytest.mark.asyncio
async def test_not_configured_raises() -> None:
    with pytest.raises(GatewayNotConfiguredError):
        await ZAPIClient(None, None).send_text("5511987654321", "Olá")
    with pytest.raises(GatewayNotConfiguredError):
        await ZAPIClient(BASE_URL, None).fetch_groups()

@pytest.mark.asyncio
async def test_fetch_groups_passes_pagination(monkeypatch) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["params"] = dict(request.url.params)
        return httpx.Response(200, json=[{"id": "1@g.us", "name": "Grupo"}])

    use_transport(monkeypatch, handler)
    groups = await ZAPIClient(BASE_URL, "segredo").fetch_groups(page=2, page_size=50)

    assert captured["params"] == {"page": "2", "pageSize": "50"}
    assert [g.name for g in groups] == ["Grupo"]

@pytest.mark.asyncio
async def test_get_status_error_raises(monkeypatch) -> None:
    use_transport(monkeypatch, lambda request: httpx.Response(401))
    with pytest.raises(GatewayError):
        await ZAPIClient(BASE_URL, "segredo").get_status()

@pytest.mark.asyncio
async def test_runtime_config_overrides_environment(test_redis, monkeypatch) -> None:
    monkeypatch.setattr(settings, "ZAPI_BASE_URL", "https://env.test")
    monkeypatch.setattr(settings, "ZAPI_CLIENT_TOKEN", "env-token")

    config = await load_gateway_config(test_redis)
    assert config.source == "environment"
    assert config.base_url == "https://env.test"

    await zapi.save_gateway_config(test_redis, "https://runtime.test", "runtime-token")
    config = await load_gateway_config(test_redis)
    assert config.source == "runtime"
    assert config.client_token == "runtime-token"

    await zapi.clear_gateway_config(test_redis)
    assert (await load_gateway_config(test_redis)).source == "environment"
