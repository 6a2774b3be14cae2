import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.models.document import DocumentStatus, UploadedDocument
from portal.models.user import StartupStatus, User
from portal.services import document_configs
from portal.services.progress import find_item
from portal.services.storage import StorageService

logger = logging.getLogger(__name__)

class UploadValidationError(Exception):
    """Arquivo recusado antes de qualquer gravação."""

class DocumentNotFoundError(Exception):
    pass

def validate_file(filename: str, content_type: str, size: int) -> None:
    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if size == 0:
        raise UploadValidationError(f"Arquivo {filename} está vazio")
    if size > max_size:
        raise UploadValidationError(f"Arquivo {filename} é muito grande. Máximo: {settings.MAX_UPLOAD_SIZE_MB}MB")
    if content_type not in settings.ALLOWED_UPLOAD_TYPES:
        raise UploadValidationError(f"Tipo de arquivo não permitido: {content_type}")

async def upload(
    db: AsyncSession,
    storage: StorageService,
    user: User,
    category_id: str,
    item_id: str,
    filename: str,
    content_type: str,
    data: bytes,
    is_extra: bool = False,
) -> UploadedDocument:
    """
    Grava o arquivo e o registro de upload.

    Upload não extra substitui o registro existente do mesmo
    (startup, categoria, item), removendo o arquivo antigo. Upload extra
    sempre acumula. Não há proteção contra dois envios simultâneos.
    """
    validate_file(filename, content_type, len(data))

    config = await document_configs.resolve_for_user(db, user)
    item = None if is_extra else find_item(config, category_id, item_id)

    stored = await storage.upload(data, StorageService.build_path(user.id, category_id, filename), content_type)

    replaced_paths: List[str] = []
    if not is_extra:
        existing = await db.execute(
            select(UploadedDocument).where(
                UploadedDocument.startup_id == user.id,
                UploadedDocument.category == category_id,
                UploadedDocument.name == item_id,
                UploadedDocument.is_extra.is_(False),
            )
        )
        for old in existing.scalars().all():
            replaced_paths.append(old.file_path)
            await db.delete(old)

    document = UploadedDocument(
        startup_id=user.id,
        category=category_id,
        name=item_id,
        file_url=stored.url,
        file_path=stored.path,
        file_size=len(data),
        file_type=content_type,
        original_filename=filename,
        status=DocumentStatus.UPLOADED.value,
        required=bool(item and item.get("required")),
        is_extra=is_extra,
    )
    db.add(document)

    if user.status not in (StartupStatus.COMPLETED.value, StartupStatus.UNDER_REVIEW.value):
        user.status = StartupStatus.IN_PROGRESS.value

    try:
        await db.commit()
    except SQLAlchemyError:
        logger.error(f"Falha ao registrar upload de {user.id}, removendo arquivo {stored.path}")
        await db.rollback()
        await storage.delete(stored.path)
        raise
    await db.refresh(document)

    for path in replaced_paths:
        await storage.delete(path)

    logger.info(f"Documento {category_id}/{item_id} enviado pela startup {user.id} (extra={is_extra})")
    return document

async def list_for_startup(db: AsyncSession, startup_id: uuid.UUID) -> List[UploadedDocument]:
    result = await db.execute(
        select(UploadedDocument)
        .where(UploadedDocument.startup_id == startup_id)
        .order_by(UploadedDocument.uploaded_at.desc())
    )
    return list(result.scalars().all())

async def list_all(db: AsyncSession, status: Optional[str] = None) -> List[UploadedDocument]:
    query = select(UploadedDocument).order_by(UploadedDocument.uploaded_at.desc())
    if status:
        query = query.where(UploadedDocument.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())

async def update_status(db: AsyncSession, document_id: uuid.UUID, status: str) -> UploadedDocument:
    document = await db.get(UploadedDocument, document_id)
    if document is None:
        raise DocumentNotFoundError("Documento não encontrado")
    document.status = status
    await db.commit()
    await db.refresh(document)
    return document

async def delete(
    db: AsyncSession,
    storage: StorageService,
    startup_id: uuid.UUID,
    category_id: str,
    item_id: str,
) -> UploadedDocument:
    """Remove o upload (não extra) da startup para o par e o arquivo correspondente."""
    result = await db.execute(
        select(UploadedDocument).where(
            UploadedDocument.startup_id == startup_id,
            UploadedDocument.category == category_id,
            UploadedDocument.name == item_id,
            UploadedDocument.is_extra.is_(False),
        ).limit(1)
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise DocumentNotFoundError("Documento não encontrado")
    return await _remove(db, storage, document)

async def delete_by_id(
    db: AsyncSession,
    storage: StorageService,
    startup_id: uuid.UUID,
    document_id: uuid.UUID,
) -> UploadedDocument:
    document = await db.get(UploadedDocument, document_id)
    if document is None or document.startup_id != startup_id:
        raise DocumentNotFoundError("Documento não encontrado")
    return await _remove(db, storage, document)

async def _remove(db: AsyncSession, storage: StorageService, document: UploadedDocument) -> UploadedDocument:
    path = document.file_path
    await db.delete(document)
    await db.commit()
    await storage.delete(path)
    logger.info(f"Documento {document.category}/{document.name} removido da startup {document.startup_id}")
    return document
