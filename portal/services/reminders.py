"""
Envio de lembretes e mensagens WhatsApp para as startups.

Fluxo disparado pelo admin: calcula enviados/pendentes, renderiza o
template, envia pela Z-API e registra o resultado no log de notificações
(inclusive falhas, com status `failed`). Não há retry: repetir é uma nova
ação do admin.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models.message_template import MessageType
from portal.models.notification import NotificationStatus
from portal.models.user import StartupStatus, User, UserRole
from portal.schemas.messaging import BulkReminderResult, ReminderResult
from portal.services import document_configs, messaging, notifications, uploads
from portal.services.zapi import ZAPIClient, validate_phone_number

logger = logging.getLogger(__name__)

# Status de startup que recebem o lembrete em massa
BULK_ELIGIBLE_STATUSES = (StartupStatus.IN_PROGRESS.value, StartupStatus.PENDING.value)

class MissingContactError(Exception):
    """Startup sem telefone e sem grupo WhatsApp."""

class EmptyMessageError(Exception):
    pass

def resolve_target(startup: User) -> str:
    """Grupo vinculado tem prioridade; senão o telefone normalizado."""
    if startup.whatsapp_group_id:
        return startup.whatsapp_group_id
    if startup.phone:
        return validate_phone_number(startup.phone)
    raise MissingContactError("Startup não possui telefone ou grupo WhatsApp configurado")

async def render_template_for(db: AsyncSession, startup: User, template_type: str) -> str:
    """Renderiza o template do tipo pedido (ou o padrão embutido) para a startup."""
    template = await messaging.get_template_by_type(db, template_type)
    content = template.content if template else messaging.default_template_content(template_type)

    config = await document_configs.resolve_for_user(db, startup)
    documents = await uploads.list_for_startup(db, startup.id)
    variables = messaging.build_message_variables(startup, config, documents)
    return messaging.format_message(content, variables)

async def send_message(
    db: AsyncSession,
    gateway: ZAPIClient,
    startup: User,
    message: str,
    type: str = MessageType.REMINDER.value,
) -> ReminderResult:
    """
    Envia uma mensagem já renderizada e registra o resultado.
    Erros de validação são levantados antes de qualquer chamada externa.
    """
    if not message or not message.strip():
        raise EmptyMessageError("Mensagem não pode estar vazia")
    target = resolve_target(startup)

    result = await gateway.send_text(target, message)
    status = NotificationStatus.SENT.value if result.success else NotificationStatus.FAILED.value
    if not result.success:
        logger.error(f"Falha ao enviar {type} para {startup.name or startup.email}: {result.error}")

    notification = await notifications.record(
        db,
        startup_id=startup.id,
        type=type,
        message=message,
        status=status,
        whatsapp_message_id=result.message_id,
        error=result.error if not result.success else None,
    )
    return ReminderResult(
        startup_id=startup.id,
        startup_name=startup.name or startup.email,
        success=result.success,
        notification_id=notification.id,
        message_id=result.message_id,
        error=result.error,
    )

async def send_reminder(db: AsyncSession, gateway: ZAPIClient, startup: User) -> ReminderResult:
    """Lembrete com a lista de documentos enviados e pendentes."""
    resolve_target(startup)
    message = await render_template_for(db, startup, MessageType.REMINDER.value)
    return await send_message(db, gateway, startup, message, MessageType.REMINDER.value)

async def eligible_startups(db: AsyncSession) -> List[User]:
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.STARTUP.value)
        .where(User.status.in_(BULK_ELIGIBLE_STATUSES))
        .order_by(User.created_at)
    )
    return list(result.scalars().all())

async def send_bulk_reminders(
    db: AsyncSession,
    gateway: ZAPIClient,
    delay: float = 1.0,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> BulkReminderResult:
    """
    Envia um lembrete por startup elegível, em sequência, aguardando
    `delay` segundos após cada envio. Uma falha não interrompe o laço.
    """
    sleep = sleep or asyncio.sleep
    startups = await eligible_startups(db)
    results: List[ReminderResult] = []

    logger.info(f"Enviando lembretes em massa para {len(startups)} startups")
    for startup in startups:
        try:
            results.append(await send_reminder(db, gateway, startup))
        except MissingContactError as e:
            logger.warning(f"Lembrete não enviado para {startup.email}: {e}")
            results.append(ReminderResult(
                startup_id=startup.id,
                startup_name=startup.name or startup.email,
                success=False,
                error=str(e),
            ))
        await sleep(delay)

    sent = sum(1 for r in results if r.success)
    return BulkReminderResult(total=len(results), sent=sent, failed=len(results) - sent, results=results)
