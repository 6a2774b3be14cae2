import logging
import re
import uuid
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import limiter
from portal.core.deps import get_current_admin, get_current_startup, get_current_user
from portal.db.session import get_db
from portal.models.document import UploadedDocument
from portal.models.user import User, UserRole
from portal.schemas.document import DocumentResponse, DocumentStatusLiteral, DocumentStatusUpdate, DocumentsList
from portal.services import uploads
from portal.services.events import EventBus, get_event_bus
from portal.services.storage import StorageError, StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents")

def content_disposition(filename: str) -> str:
    """
    Header de download com fallback ASCII e o nome original em UTF-8 (RFC 5987).
    Headers HTTP só aceitam latin-1.
    """
    fallback = re.sub(r'[^\x20-\x7e]|["\\]', "_", filename) or "documento"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"

@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    category_id: str = Form(...),
    item_id: str = Form(...),
    is_extra: bool = Form(False),
    current_user: User = Depends(get_current_startup),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    events: EventBus = Depends(get_event_bus),
):
    """
    Envia um documento da startup atual.

    Para um item da configuração, substitui o envio anterior do mesmo item.
    Com `is_extra`, o arquivo é acumulado como documento adicional.
    """
    data = await file.read()
    filename = file.filename or "arquivo"
    try:
        document = await uploads.upload(
            db,
            storage,
            current_user,
            category_id=category_id,
            item_id=item_id,
            filename=filename,
            content_type=file.content_type or "application/octet-stream",
            data=data,
            is_extra=is_extra,
        )
    except uploads.UploadValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        events.error("Erro no upload", f"Falha ao salvar {filename}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Falha ao salvar o arquivo")

    events.document_uploaded(current_user.name or current_user.email, filename)
    return document

@router.get("", response_model=DocumentsList)
async def list_my_documents(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Lista os documentos enviados pelo usuário atual, do mais recente ao mais antigo.
    """
    documents = await uploads.list_for_startup(db, current_user.id)
    return DocumentsList(items=[DocumentResponse.model_validate(doc) for doc in documents], total=len(documents))

@router.get("/all", response_model=DocumentsList)
async def list_all_documents(
    status_filter: Optional[DocumentStatusLiteral] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Todos os documentos enviados (admin), com filtro opcional por status."""
    documents = await uploads.list_all(db, status_filter)
    return DocumentsList(items=[DocumentResponse.model_validate(doc) for doc in documents], total=len(documents))

@router.get("/files/{path:path}")
async def download_file(
    path: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """
    Baixa o arquivo de um documento. A startup só acessa os próprios arquivos.
    """
    result = await db.execute(select(UploadedDocument).where(UploadedDocument.file_path == path).limit(1))
    document = result.scalar_one_or_none()
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Documento não encontrado")

    if current_user.role != UserRole.ADMIN.value and document.startup_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado a este documento")

    try:
        content = await storage.read(path)
    except StorageError as e:
        logger.error(f"Falha ao ler arquivo {path}: {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arquivo não encontrado")

    return Response(
        content=content,
        media_type=document.file_type,
        headers={"Content-Disposition": content_disposition(document.original_filename)},
    )

@router.delete("/item/{category_id}/{item_id}", response_model=DocumentResponse)
async def delete_item_document(
    category_id: str,
    item_id: str,
    current_user: User = Depends(get_current_startup),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """
    Remove o envio do item (categoria, documento) da startup atual e o arquivo.
    """
    try:
        return await uploads.delete(db, storage, current_user.id, category_id, item_id)
    except uploads.DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

@router.delete("/{document_id}", response_model=DocumentResponse)
async def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_startup),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Remove um documento pelo id (usado para documentos extras)."""
    try:
        return await uploads.delete_by_id(db, storage, current_user.id, document_id)
    except uploads.DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

@router.patch("/{document_id}/status", response_model=DocumentResponse)
async def review_document(
    document_id: uuid.UUID,
    status_in: DocumentStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Revisão do admin: marca o documento como verificado, rejeitado etc."""
    try:
        return await uploads.update_status(db, document_id, status_in.status)
    except uploads.DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
