import uuid
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional

from portal.core.config import settings

class UserCreate(BaseModel):
    """Schema para cadastro de usuário."""
    email: EmailStr
    password: str
    confirm_password: str
    name: str = Field(..., min_length=1)
    cnpj: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def check_passwords(self) -> "UserCreate":
        if len(self.password) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f"A senha deve ter pelo menos {settings.PASSWORD_MIN_LENGTH} caracteres")
        if self.password != self.confirm_password:
            raise ValueError("As senhas não coincidem")
        return self

class UserResponse(BaseModel):
    """Schema para resposta de usuário."""
    id: uuid.UUID
    email: EmailStr
    name: str
    role: str
    is_active: bool
    cnpj: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None
    document_config_id: Optional[str] = None
    status: str
    deadline: Optional[datetime] = None
    whatsapp_group_id: Optional[str] = None
    completion_date: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProfileUpdate(BaseModel):
    """Campos do perfil que a própria startup pode alterar."""
    name: Optional[str] = Field(None, min_length=1)
    cnpj: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("O nome não pode ser nulo")
        return value

class Token(BaseModel):
    """Schema para token de autenticação."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class RefreshToken(BaseModel):
    """Schema para refresh token."""
    refresh_token: str
