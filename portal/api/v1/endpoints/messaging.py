import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import get_gateway, get_redis, limiter
from portal.api.v1.endpoints.startups import get_startup_or_404
from portal.core.config import settings
from portal.core.deps import get_current_admin
from portal.db.session import get_db
from portal.models.user import User
from portal.schemas.messaging import (
    BulkReminderResult,
    GatewayConfigResponse,
    GatewayConfigUpdate,
    GatewayStatus,
    NotificationResponse,
    NotificationsList,
    ReminderResult,
    SendMessageRequest,
    WhatsAppGroup,
)
from portal.services import notifications, reminders, zapi
from portal.services.events import EventBus, get_event_bus
from portal.services.zapi import GatewayError, GatewayNotConfiguredError, ZAPIClient

logger = logging.getLogger(__name__)

router = APIRouter()

def _not_configured(events: EventBus, error: GatewayNotConfiguredError) -> HTTPException:
    events.error("WhatsApp não configurado", str(error))
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))

def _check_result(result: ReminderResult, events: EventBus) -> ReminderResult:
    if not result.success:
        logger.warning(f"Envio para a startup {result.startup_id} falhou: {result.error}")
        events.error("Falha no envio", f"Não foi possível enviar para {result.startup_name}: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Falha ao enviar mensagem: {result.error}"
        )
    return result

@router.post("/startups/{startup_id}/reminder", response_model=ReminderResult)
@limiter.limit("30/minute")
async def send_reminder(
    request: Request,
    startup_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    gateway: ZAPIClient = Depends(get_gateway),
    events: EventBus = Depends(get_event_bus),
):
    """
    Envia o lembrete com os documentos recebidos e pendentes da startup.
    O envio, com sucesso ou falha, fica registrado no log de notificações.
    """
    startup = await get_startup_or_404(db, startup_id)
    try:
        result = await reminders.send_reminder(db, gateway, startup)
    except reminders.MissingContactError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GatewayNotConfiguredError as e:
        raise _not_configured(events, e)

    _check_result(result, events)
    events.reminder_sent(result.startup_name)
    return result

@router.post("/startups/{startup_id}/messages", response_model=ReminderResult)
@limiter.limit("30/minute")
async def send_message(
    request: Request,
    startup_id: uuid.UUID,
    message_in: SendMessageRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    gateway: ZAPIClient = Depends(get_gateway),
    events: EventBus = Depends(get_event_bus),
):
    """
    Envia uma mensagem avulsa: texto livre ou um template renderizado para a startup.
    """
    startup = await get_startup_or_404(db, startup_id)
    try:
        if message_in.template_type:
            message = await reminders.render_template_for(db, startup, message_in.template_type)
        else:
            message = message_in.message or ""
        result = await reminders.send_message(db, gateway, startup, message, message_in.type)
    except (reminders.MissingContactError, reminders.EmptyMessageError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GatewayNotConfiguredError as e:
        raise _not_configured(events, e)

    _check_result(result, events)
    events.success("Mensagem enviada", f"Mensagem enviada para {result.startup_name}")
    return result

@router.post("/reminders/bulk", response_model=BulkReminderResult)
@limiter.limit("5/minute")
async def send_bulk_reminders(
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    gateway: ZAPIClient = Depends(get_gateway),
    events: EventBus = Depends(get_event_bus),
):
    """
    Envia lembretes para todas as startups pendentes ou em andamento, uma por vez,
    com intervalo fixo entre os envios. Falhas individuais não interrompem o lote.
    """
    if not gateway.configured:
        raise _not_configured(events, GatewayNotConfiguredError("Z-API não configurado. Verifique as variáveis de ambiente."))

    result = await reminders.send_bulk_reminders(db, gateway, delay=settings.BULK_REMINDER_DELAY_SECONDS)

    if result.failed:
        events.warning("Lembretes em massa", f"{result.sent} enviado(s), {result.failed} com falha")
    else:
        events.success("Lembretes em massa", f"{result.sent} lembrete(s) enviado(s)")
    return result

@router.get("/notifications", response_model=NotificationsList)
async def list_notifications(
    skip: int = 0,
    limit: int = 100,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Histórico de mensagens enviadas, do mais recente ao mais antigo."""
    items = await notifications.list_all(db, skip=skip, limit=limit)
    return NotificationsList(items=[NotificationResponse.model_validate(n) for n in items], total=len(items))

@router.get("/startups/{startup_id}/notifications", response_model=NotificationsList)
async def list_startup_notifications(
    startup_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    startup = await get_startup_or_404(db, startup_id)
    items = await notifications.list_for_startup(db, startup.id)
    return NotificationsList(items=[NotificationResponse.model_validate(n) for n in items], total=len(items))

# WhatsApp (Z-API)

@router.get("/whatsapp/groups", response_model=list[WhatsAppGroup])
async def list_whatsapp_groups(
    page: int = 1,
    page_size: int = 20,
    admin: User = Depends(get_current_admin),
    gateway: ZAPIClient = Depends(get_gateway),
    events: EventBus = Depends(get_event_bus),
):
    """Grupos da instância, para vincular uma startup ao seu grupo."""
    try:
        return await gateway.fetch_groups(page=page, page_size=page_size)
    except GatewayNotConfiguredError as e:
        raise _not_configured(events, e)
    except GatewayError as e:
        events.error("Erro na Z-API", str(e))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

@router.get("/whatsapp/status", response_model=GatewayStatus)
async def whatsapp_status(
    admin: User = Depends(get_current_admin),
    gateway: ZAPIClient = Depends(get_gateway),
):
    if not gateway.configured:
        return GatewayStatus(configured=False)
    try:
        return GatewayStatus(configured=True, status=await gateway.get_status())
    except GatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

@router.get("/whatsapp/config", response_model=GatewayConfigResponse)
async def read_whatsapp_config(
    admin: User = Depends(get_current_admin),
    redis: Redis = Depends(get_redis),
):
    """Configuração vigente. O token nunca é devolvido por inteiro."""
    config = await zapi.load_gateway_config(redis)
    return GatewayConfigResponse(
        base_url=config.base_url,
        client_token_masked=zapi.mask_token(config.client_token),
        configured=config.configured,
        source=config.source,
    )

@router.put("/whatsapp/config", response_model=GatewayConfigResponse)
async def update_whatsapp_config(
    config_in: GatewayConfigUpdate,
    admin: User = Depends(get_current_admin),
    redis: Redis = Depends(get_redis),
):
    """Salva URL e token da Z-API; passam a valer no lugar das variáveis de ambiente."""
    config = await zapi.save_gateway_config(redis, config_in.base_url, config_in.client_token)
    return GatewayConfigResponse(
        base_url=config.base_url,
        client_token_masked=zapi.mask_token(config.client_token),
        configured=config.configured,
        source=config.source,
    )

@router.delete("/whatsapp/config", status_code=status.HTTP_204_NO_CONTENT)
async def clear_whatsapp_config(
    admin: User = Depends(get_current_admin),
    redis: Redis = Depends(get_redis),
):
    """Descarta a configuração salva e volta a usar as variáveis de ambiente."""
    await zapi.clear_gateway_config(redis)
