import uuid
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List, Literal, Optional

from portal.schemas.auth import UserResponse
from portal.schemas.document import DocumentResponse
from portal.schemas.progress import ProgressReport

StartupStatusLiteral = Literal["pending", "in_progress", "completed", "under_review"]

class StartupSummary(BaseModel):
    """Linha da listagem de startups do back office."""
    id: uuid.UUID
    email: str
    name: str
    status: str
    phone: Optional[str] = None
    whatsapp_group_id: Optional[str] = None
    document_config_id: Optional[str] = None
    progress: float
    last_login: Optional[datetime] = None

class StartupsList(BaseModel):
    items: List[StartupSummary]
    total: int

class StartupDetail(BaseModel):
    profile: UserResponse
    progress: ProgressReport
    documents: List[DocumentResponse]

class StartupUpdate(BaseModel):
    """Campos que o admin pode alterar numa startup. O papel não é alterável."""
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    cnpj: Optional[str] = None
    status: Optional[StartupStatusLiteral] = None
    document_config_id: Optional[str] = None
    whatsapp_group_id: Optional[str] = None
    deadline: Optional[datetime] = None

    @field_validator("name", "status")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("Campo não pode ser nulo")
        return value
