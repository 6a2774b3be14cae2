import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.deps import get_current_startup
from portal.db.session import get_db
from portal.models.user import StartupStatus, User
from portal.schemas.auth import UserResponse
from portal.schemas.progress import ProgressReport
from portal.services import document_configs, uploads
from portal.services.events import EventBus, get_event_bus
from portal.services.progress import calculate_progress, can_submit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress")

async def progress_for(db: AsyncSession, user: User) -> ProgressReport:
    """Progresso da startup com a configuração resolvida (ou a padrão)."""
    config = await document_configs.resolve_for_user(db, user)
    documents = await uploads.list_for_startup(db, user.id)
    return calculate_progress(config, documents)

@router.get("/me", response_model=ProgressReport)
async def read_my_progress(
    current_user: User = Depends(get_current_startup),
    db: AsyncSession = Depends(get_db)
):
    """
    Painel da startup: percentual geral, por categoria e a lista de pendências.
    """
    return await progress_for(db, current_user)

@router.post("/me/submit", response_model=UserResponse)
async def submit_documents(
    current_user: User = Depends(get_current_startup),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    """
    Envio final da documentação. Só é aceito com todos os obrigatórios enviados.
    """
    report = await progress_for(db, current_user)
    if not can_submit(report):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Ainda há {len(report.missing_items)} documento(s) obrigatório(s) pendente(s)"
        )

    current_user.status = StartupStatus.COMPLETED.value
    current_user.completion_date = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(current_user)

    logger.info(f"Startup {current_user.id} concluiu o envio de documentos")
    events.success("Documentação concluída", f"{current_user.name or current_user.email} concluiu o envio")
    return current_user
