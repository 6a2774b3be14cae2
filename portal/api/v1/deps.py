from fastapi import Depends
from slowapi import Limiter
from slowapi.util import get_remote_address
from redis.asyncio import Redis

from portal.core.config import settings
from portal.services.zapi import ZAPIClient, load_gateway_config

# Conexão com Redis
redis = Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    decode_responses=True
)

# Configuração do rate limiter usando Redis como storage
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}",
    enabled=settings.RATE_LIMIT_ENABLED,
)

async def get_redis() -> Redis:
    """Dependência que fornece o cliente Redis compartilhado."""
    return redis

async def get_gateway(redis_client: Redis = Depends(get_redis)) -> ZAPIClient:
    """
    Dependência que fornece o cliente Z-API com a configuração vigente:
    a salva pelo admin no Redis ou, na falta dela, a do ambiente.
    """
    config = await load_gateway_config(redis_client)
    return ZAPIClient(config.base_url, config.client_token, timeout=settings.ZAPI_TIMEOUT_SECONDS)
