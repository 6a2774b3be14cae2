import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.endpoints.startups import get_startup_or_404
from portal.core.deps import get_current_admin
from portal.db.session import get_db
from portal.models.message_template import MessageTemplate
from portal.models.user import User
from portal.schemas.messaging import (
    MessagePreview,
    MessageTemplateCreate,
    MessageTemplateList,
    MessageTemplateResponse,
    MessageTemplateUpdate,
)
from portal.services import document_configs, messaging, uploads

router = APIRouter(prefix="/message-templates")

async def get_template_or_404(db: AsyncSession, template_id: uuid.UUID) -> MessageTemplate:
    template = await messaging.get_template(db, template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template não encontrado")
    return template

@router.get("", response_model=MessageTemplateList)
async def list_templates(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Lista os templates. Na primeira leitura com a tabela vazia, cria os padrões.
    """
    templates = await messaging.list_templates(db)
    return MessageTemplateList(
        items=[MessageTemplateResponse.model_validate(t) for t in templates],
        total=len(templates)
    )

@router.post("", response_model=MessageTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_in: MessageTemplateCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await messaging.create_template(db, template_in.model_dump())

@router.get("/{template_id}", response_model=MessageTemplateResponse)
async def get_template(
    template_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await get_template_or_404(db, template_id)

@router.patch("/{template_id}", response_model=MessageTemplateResponse)
async def update_template(
    template_id: uuid.UUID,
    template_in: MessageTemplateUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    template = await get_template_or_404(db, template_id)
    return await messaging.update_template(db, template, template_in.model_dump(exclude_unset=True))

@router.get("/{template_id}/preview/{startup_id}", response_model=MessagePreview)
async def preview_template(
    template_id: uuid.UUID,
    startup_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Renderiza o template com as variáveis de uma startup, sem enviar nada."""
    template = await get_template_or_404(db, template_id)
    startup = await get_startup_or_404(db, startup_id)
    config = await document_configs.resolve_for_user(db, startup)
    documents = await uploads.list_for_startup(db, startup.id)
    return messaging.preview_template(template, startup, config, documents)
