import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from httpx import AsyncClient, HTTPError
from redis.asyncio import Redis

from portal.core.config import settings
from portal.schemas.messaging import SendResult, WhatsAppGroup

logger = logging.getLogger(__name__)

# Chave do Redis com a configuração salva pelo admin
RUNTIME_CONFIG_KEY = "zapi_config"

class GatewayError(Exception):
    """Falha na comunicação com a Z-API."""

class GatewayNotConfiguredError(GatewayError):
    """URL base ou token da Z-API ausentes."""

@dataclass
class GatewayConfig:
    base_url: Optional[str]
    client_token: Optional[str]
    source: str = "environment"

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.client_token)

class ZAPIClient:
    """
    Cliente para o gateway WhatsApp (Z-API).
    Cada chamada abre um AsyncClient próprio; não há retry nem backoff.
    """

    def __init__(self, base_url: Optional[str], client_token: Optional[str], timeout: float = 15.0):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.client_token = client_token
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.client_token)

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise GatewayNotConfiguredError("Z-API não configurado. Verifique as variáveis de ambiente.")

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "client-token": self.client_token or "",
            "Content-Type": "application/json",
        }

    async def fetch_groups(self, page: int = 1, page_size: int = 20) -> List[WhatsAppGroup]:
        """
        Lista os grupos do WhatsApp da instância.

        A Z-API devolve a lista em formatos diferentes conforme a versão:
        lista pura ou dentro de `groups`, `data` ou `result`.
        """
        self._ensure_configured()
        try:
            async with AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/groups",
                    params={"page": page, "pageSize": page_size},
                    headers=self.headers,
                )
                response.raise_for_status()
                data = response.json()
        except (HTTPError, ValueError) as e:
            logger.error(f"Erro ao buscar grupos do WhatsApp: {e}")
            raise GatewayError(f"Erro ao buscar grupos do WhatsApp: {e}") from e

        groups = parse_groups_payload(data)
        if groups is None:
            logger.warning(f"Formato inesperado de resposta da Z-API: {data!r}")
            return []
        return groups

    async def send_text(self, target: str, message: str) -> SendResult:
        """
        Envia texto para um telefone ou id de grupo.
        Falhas de rede ou HTTP viram `success=False`, nunca exceção.
        """
        self._ensure_configured()
        try:
            async with AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/send-text",
                    json={"phone": target, "message": message},
                    headers=self.headers,
                )
                response.raise_for_status()
                data = response.json()
        except (HTTPError, ValueError) as e:
            logger.error(f"Erro ao enviar mensagem WhatsApp para {target}: {e}")
            return SendResult(success=False, error=str(e))

        if not isinstance(data, dict):
            data = {}
        message_id = data.get("messageId") or data.get("id") or data.get("zaapId")
        return SendResult(
            success=data.get("success", True) is not False,
            message_id=str(message_id) if message_id else None,
            error=data.get("error"),
        )

    async def get_status(self) -> Dict[str, Any]:
        """Status da instância, no formato livre devolvido pela Z-API."""
        self._ensure_configured()
        try:
            async with AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/status", headers=self.headers)
                response.raise_for_status()
                return response.json()
        except (HTTPError, ValueError) as e:
            logger.error(f"Erro ao verificar status da instância: {e}")
            raise GatewayError(f"Erro ao verificar status da instância: {e}") from e

def parse_groups_payload(data: Any) -> Optional[List[WhatsAppGroup]]:
    if isinstance(data, list):
        raw_groups = data
    elif isinstance(data, dict):
        raw_groups = None
        for key in ("groups", "data", "result"):
            if isinstance(data.get(key), list):
                raw_groups = data[key]
                break
        if raw_groups is None:
            return None
    else:
        return None

    groups = []
    for group in raw_groups:
        participants = group.get("participants")
        if isinstance(participants, list):
            count = len(participants)
        else:
            count = group.get("participantsCount") or 0
        groups.append(WhatsAppGroup(
            id=str(group.get("id") or group.get("groupId") or group.get("chatId") or ""),
            name=group.get("name") or group.get("subject") or group.get("title") or "Grupo sem nome",
            participants=count,
        ))
    return groups

def validate_phone_number(phone: str) -> str:
    """
    Normaliza um telefone brasileiro para o formato aceito pela Z-API (com DDI 55).
    """
    clean_phone = re.sub(r"\D", "", phone)

    if len(clean_phone) == 11 and clean_phone.startswith("11"):
        clean_phone = "55" + clean_phone
    elif len(clean_phone) == 10:
        clean_phone = "5511" + clean_phone
    elif not clean_phone.startswith("55"):
        clean_phone = "55" + clean_phone

    return clean_phone

def mask_token(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]

# ---------------------------------------------------------------------------
# Configuração em tempo de execução (Redis) com fallback para o ambiente
# ---------------------------------------------------------------------------

async def load_gateway_config(redis: Redis) -> GatewayConfig:
    raw = await redis.get(RUNTIME_CONFIG_KEY)
    if raw:
        try:
            saved = json.loads(raw)
            return GatewayConfig(
                base_url=saved.get("base_url"),
                client_token=saved.get("client_token"),
                source="runtime",
            )
        except (ValueError, AttributeError) as e:
            logger.error(f"Configuração da Z-API salva está corrompida: {e}")

    source = "environment" if settings.ZAPI_BASE_URL or settings.ZAPI_CLIENT_TOKEN else "none"
    return GatewayConfig(
        base_url=settings.ZAPI_BASE_URL,
        client_token=settings.ZAPI_CLIENT_TOKEN,
        source=source,
    )

async def save_gateway_config(redis: Redis, base_url: str, client_token: str) -> GatewayConfig:
    await redis.set(RUNTIME_CONFIG_KEY, json.dumps({"base_url": base_url, "client_token": client_token}))
    logger.info("Configuração da Z-API atualizada em tempo de execução")
    return GatewayConfig(base_url=base_url, client_token=client_token, source="runtime")

async def clear_gateway_config(redis: Redis) -> None:
    await redis.delete(RUNTIME_CONFIG_KEY)
