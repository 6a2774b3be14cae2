from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Optional

class DocumentItemSchema(BaseModel):
    """Item de documento dentro de uma categoria."""
    id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1)
    required: bool = False
    description: Optional[str] = None

class DocumentCategorySchema(BaseModel):
    """Categoria de documentos com sua lista ordenada de itens."""
    id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1)
    documents: List[DocumentItemSchema] = Field(default_factory=list)

class DocumentConfigCreate(BaseModel):
    """Schema para criação de configuração de documentos."""
    name: str = Field(..., description="Nome da configuração")
    description: Optional[str] = None
    categories: List[DocumentCategorySchema] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Nome da configuração é obrigatório")
        return value.strip()

class DocumentConfigUpdate(BaseModel):
    """
    Atualização parcial. Se `expected_revision` for informado e não bater com
    a revisão gravada, a atualização é rejeitada com 409.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[List[DocumentCategorySchema]] = None
    expected_revision: Optional[int] = None

class DocumentConfigResponse(BaseModel):
    """Schema para resposta com dados da configuração."""
    id: str
    name: str
    description: Optional[str] = None
    categories: List[DocumentCategorySchema]
    revision: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    orphaned_uploads: int = Field(0, description="Uploads que deixaram de corresponder a um item da configuração")

    class Config:
        from_attributes = True

class DocumentConfigList(BaseModel):
    items: List[DocumentConfigResponse]
    total: int

class CategoryCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1)
    documents: List[DocumentItemSchema] = Field(default_factory=list)
    expected_revision: Optional[int] = None

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    expected_revision: Optional[int] = None

class ItemCreate(DocumentItemSchema):
    expected_revision: Optional[int] = None

class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    required: Optional[bool] = None
    description: Optional[str] = None
    expected_revision: Optional[int] = None

class OrphanedUpload(BaseModel):
    """Upload cujo par (categoria, item) não existe mais na configuração."""
    document_id: str
    startup_id: str
    category: str
    name: str

class OrphanedUploadsList(BaseModel):
    config_id: str
    items: List[OrphanedUpload]
    total: int
