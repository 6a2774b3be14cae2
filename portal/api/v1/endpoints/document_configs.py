from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.deps import get_current_admin
from portal.db.session import get_db
from portal.models.document_config import DocumentConfig
from portal.models.user import User
from portal.schemas.document_config import (
    CategoryCreate,
    CategoryUpdate,
    DocumentConfigCreate,
    DocumentConfigList,
    DocumentConfigResponse,
    DocumentConfigUpdate,
    ItemCreate,
    ItemUpdate,
    OrphanedUpload,
    OrphanedUploadsList,
)
from portal.services import document_configs
from portal.services.document_configs import (
    ConfigConflictError,
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
)
from portal.services.events import EventBus, get_event_bus

router = APIRouter(prefix="/document-configs")

def _http_error(error: ConfigError) -> HTTPException:
    if isinstance(error, ConfigNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ConfigConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, ConfigValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))

async def _after_edit(db: AsyncSession, config: DocumentConfig, events: EventBus) -> DocumentConfigResponse:
    """Resposta de uma edição, com a contagem de uploads que ficaram órfãos."""
    orphans = await document_configs.find_orphaned_uploads(db, config)
    if orphans:
        events.warning(
            "Uploads órfãos",
            f"{len(orphans)} documento(s) enviado(s) não correspondem mais à configuração {config.name}",
            metadata={"config_id": config.id, "count": len(orphans)},
        )
    response = DocumentConfigResponse.model_validate(config)
    response.orphaned_uploads = len(orphans)
    return response

@router.get("", response_model=DocumentConfigList)
async def list_configs(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    configs = await document_configs.get_all(db)
    return DocumentConfigList(items=[DocumentConfigResponse.model_validate(c) for c in configs], total=len(configs))

@router.post("", response_model=DocumentConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_config(
    config_in: DocumentConfigCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Cria uma configuração de documentos (categorias e itens).
    """
    try:
        return await document_configs.create(
            db,
            name=config_in.name,
            description=config_in.description,
            categories=[category.model_dump() for category in config_in.categories],
            created_by=admin.email,
        )
    except ConfigError as e:
        raise _http_error(e)

@router.get("/{config_id}", response_model=DocumentConfigResponse)
async def get_config(
    config_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    config = await document_configs.get_by_id(db, config_id)
    if config is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Configuração de documentos não encontrada")
    return config

@router.patch("/{config_id}", response_model=DocumentConfigResponse)
async def update_config(
    config_id: str,
    config_in: DocumentConfigUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    """
    Atualização parcial. Sem `expected_revision` prevalece a última escrita.
    """
    changes = config_in.model_dump(exclude_unset=True, exclude={"expected_revision"})
    try:
        config = await document_configs.update(db, config_id, changes, config_in.expected_revision)
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)

@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_config(
    config_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a configuração. Startups que a usavam passam a ficar sem configuração.
    """
    try:
        await document_configs.delete(db, config_id)
    except ConfigError as e:
        raise _http_error(e)

@router.get("/{config_id}/orphans", response_model=OrphanedUploadsList)
async def list_orphans(
    config_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Uploads das startups desta configuração cujo item não existe mais."""
    config = await document_configs.get_by_id(db, config_id)
    if config is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Configuração de documentos não encontrada")

    orphans = await document_configs.find_orphaned_uploads(db, config)
    items = [
        OrphanedUpload(
            document_id=str(doc.id),
            startup_id=str(doc.startup_id),
            category=doc.category,
            name=doc.name,
        )
        for doc in orphans
    ]
    return OrphanedUploadsList(config_id=config.id, items=items, total=len(items))

# Categorias

@router.post("/{config_id}/categories", response_model=DocumentConfigResponse, status_code=status.HTTP_201_CREATED)
async def add_category(
    config_id: str,
    category_in: CategoryCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        config = await document_configs.add_category(
            db, config_id, category_in.model_dump(exclude={"expected_revision"}), category_in.expected_revision
        )
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)

@router.patch("/{config_id}/categories/{category_id}", response_model=DocumentConfigResponse)
async def update_category(
    config_id: str,
    category_id: str,
    category_in: CategoryUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        config = await document_configs.update_category(
            db, config_id, category_id, category_in.model_dump(exclude_unset=True), category_in.expected_revision
        )
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)

@router.delete("/{config_id}/categories/{category_id}", response_model=DocumentConfigResponse)
async def remove_category(
    config_id: str,
    category_id: str,
    expected_revision: int | None = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        config = await document_configs.remove_category(db, config_id, category_id, expected_revision)
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)

# Itens

@router.post("/{config_id}/categories/{category_id}/items", response_model=DocumentConfigResponse,
             status_code=status.HTTP_201_CREATED)
async def add_item(
    config_id: str,
    category_id: str,
    item_in: ItemCreate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        config = await document_configs.add_item(
            db, config_id, category_id, item_in.model_dump(exclude={"expected_revision"}), item_in.expected_revision
        )
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)

@router.patch("/{config_id}/categories/{category_id}/items/{item_id}", response_model=DocumentConfigResponse)
async def update_item(
    config_id: str,
    category_id: str,
    item_id: str,
    item_in: ItemUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        config = await document_configs.update_item(
            db, config_id, category_id, item_id, item_in.model_dump(exclude_unset=True), item_in.expected_revision
        )
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)

@router.delete("/{config_id}/categories/{category_id}/items/{item_id}", response_model=DocumentConfigResponse)
async def remove_item(
    config_id: str,
    category_id: str,
    item_id: str,
    expected_revision: int | None = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
):
    try:
        config = await document_configs.remove_item(db, config_id, category_id, item_id, expected_revision)
    except ConfigError as e:
        raise _http_error(e)
    return await _after_edit(db, config, events)
