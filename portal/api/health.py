import logging
import time
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from portal.db.session import get_db
from portal.services.events import EventBus, get_event_bus

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/health", response_model=dict)
async def health_check(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    """
    Verifica a saúde da aplicação.
    - Disponibilidade do banco de dados
    - Serviço de eventos
    - Tempo de resposta
    """
    start_time = time.time()

    try:
        result = await db.execute(text("SELECT 1"))
        db_status = "online" if result.scalar() == 1 else "offline"
    except SQLAlchemyError as e:
        logger.error(f"Banco de dados indisponível: {e}")
        db_status = "offline"

    response_time = time.time() - start_time

    return {
        "status": "ok" if db_status == "online" else "degraded",
        "database": db_status,
        "events": "running" if events.running else "stopped",
        "response_time_ms": round(response_time * 1000, 2),
        "timestamp": time.time()
    }
