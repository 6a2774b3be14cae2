import uuid
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal

DocumentStatusLiteral = Literal["pending", "uploaded", "verified", "rejected"]

class DocumentResponse(BaseModel):
    """Schema para resposta com dados do documento enviado."""
    id: uuid.UUID
    startup_id: uuid.UUID
    category: str = Field(..., description="Id da categoria")
    name: str = Field(..., description="Id do item da configuração")
    file_url: str
    file_size: int
    file_type: str
    original_filename: str
    status: DocumentStatusLiteral
    required: bool
    is_extra: bool
    uploaded_at: datetime

    class Config:
        from_attributes = True

class DocumentsList(BaseModel):
    """Schema para listar múltiplos documentos."""
    items: List[DocumentResponse]
    total: int

class DocumentStatusUpdate(BaseModel):
    """Revisão do admin."""
    status: DocumentStatusLiteral
