import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.notification import Notification

logger = logging.getLogger(__name__)

async def record(
    db: AsyncSession,
    startup_id: uuid.UUID,
    type: str,
    message: str,
    status: str,
    whatsapp_message_id: Optional[str] = None,
    error: Optional[str] = None,
) -> Notification:
    """Inclui um registro no log de mensagens. Registros nunca são alterados."""
    notification = Notification(
        startup_id=startup_id,
        type=type,
        message=message,
        status=status,
        whatsapp_message_id=whatsapp_message_id,
        error=error,
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    logger.info(f"Notificação {type} registrada para startup {startup_id} com status {status}")
    return notification

async def list_all(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Notification]:
    result = await db.execute(
        select(Notification).order_by(Notification.sent_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())

async def list_for_startup(db: AsyncSession, startup_id: uuid.UUID) -> List[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.startup_id == startup_id)
        .order_by(Notification.sent_at.desc())
    )
    return list(result.scalars().all())
