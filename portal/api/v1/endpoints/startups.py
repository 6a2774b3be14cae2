import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.endpoints.progress import progress_for
from portal.core.deps import get_current_admin
from portal.db.session import get_db
from portal.models.user import User, UserRole
from portal.schemas.auth import UserResponse
from portal.schemas.document import DocumentResponse
from portal.schemas.startup import (
    StartupDetail,
    StartupStatusLiteral,
    StartupSummary,
    StartupUpdate,
    StartupsList,
)
from portal.services import uploads

router = APIRouter(prefix="/startups")

async def get_startup_or_404(db: AsyncSession, startup_id: uuid.UUID) -> User:
    startup = await db.get(User, startup_id)
    if startup is None or startup.role != UserRole.STARTUP.value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Startup não encontrada")
    return startup

@router.get("", response_model=StartupsList)
async def list_startups(
    status_filter: Optional[StartupStatusLiteral] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Lista as startups com status e percentual de progresso.
    """
    query = select(User).where(User.role == UserRole.STARTUP.value).order_by(User.created_at)
    if status_filter:
        query = query.where(User.status == status_filter)

    result = await db.execute(query)
    items = []
    for startup in result.scalars().all():
        report = await progress_for(db, startup)
        items.append(StartupSummary(
            id=startup.id,
            email=startup.email,
            name=startup.name,
            status=startup.status,
            phone=startup.phone,
            whatsapp_group_id=startup.whatsapp_group_id,
            document_config_id=startup.document_config_id,
            progress=report.percent,
            last_login=startup.last_login,
        ))
    return StartupsList(items=items, total=len(items))

@router.get("/{startup_id}", response_model=StartupDetail)
async def get_startup(
    startup_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Perfil, progresso e documentos enviados de uma startup."""
    startup = await get_startup_or_404(db, startup_id)
    documents = await uploads.list_for_startup(db, startup.id)
    return StartupDetail(
        profile=UserResponse.model_validate(startup),
        progress=await progress_for(db, startup),
        documents=[DocumentResponse.model_validate(doc) for doc in documents],
    )

@router.patch("/{startup_id}", response_model=StartupDetail)
async def update_startup(
    startup_id: uuid.UUID,
    startup_in: StartupUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Atualiza status, configuração de documentos, grupo WhatsApp, prazo ou dados cadastrais.
    """
    startup = await get_startup_or_404(db, startup_id)
    for field, value in startup_in.model_dump(exclude_unset=True).items():
        setattr(startup, field, value)

    await db.commit()
    await db.refresh(startup)
    return await get_startup(startup_id, admin, db)
