import uuid
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

MessageTypeLiteral = Literal["reminder", "completion", "welcome", "follow_up", "deadline"]

class MessageTemplateBase(BaseModel):
    """Schema base para templates de mensagem."""
    name: str = Field(..., min_length=1)
    type: MessageTypeLiteral
    content: str = Field(..., min_length=1, description="Texto com placeholders no formato {variavel}")
    variables: List[str] = Field(default_factory=list, description="Variáveis documentadas (não validadas)")

class MessageTemplateCreate(MessageTemplateBase):
    """Schema para criação de template."""
    pass

class MessageTemplateUpdate(BaseModel):
    """Schema para atualização parcial de template."""
    name: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    variables: Optional[List[str]] = None

class MessageTemplateResponse(MessageTemplateBase):
    """Schema para resposta com dados do template."""
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class MessageTemplateList(BaseModel):
    items: List[MessageTemplateResponse]
    total: int

class MessagePreview(BaseModel):
    """Template renderizado para uma startup específica."""
    template_id: uuid.UUID
    startup_id: uuid.UUID
    message: str
    variables: Dict[str, str]

class SendMessageRequest(BaseModel):
    """
    Envio avulso para uma startup: informe `template_type` para usar um
    template ou `message` para texto livre.
    """
    type: MessageTypeLiteral = "reminder"
    template_type: Optional[MessageTypeLiteral] = None
    message: Optional[str] = None

class NotificationResponse(BaseModel):
    """Registro do log de mensagens enviadas."""
    id: uuid.UUID
    startup_id: uuid.UUID
    type: str
    message: str
    status: str
    whatsapp_message_id: Optional[str] = None
    error: Optional[str] = None
    sent_at: datetime

    class Config:
        from_attributes = True

class NotificationsList(BaseModel):
    items: List[NotificationResponse]
    total: int

class SendResult(BaseModel):
    """Resposta do gateway para um envio de texto."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

class ReminderResult(BaseModel):
    startup_id: uuid.UUID
    startup_name: str
    success: bool
    notification_id: Optional[uuid.UUID] = None
    message_id: Optional[str] = None
    error: Optional[str] = None

class BulkReminderResult(BaseModel):
    total: int
    sent: int
    failed: int
    results: List[ReminderResult]

class WhatsAppGroup(BaseModel):
    id: str
    name: str
    is_group: bool = True
    participants: int = 0

class GatewayConfigUpdate(BaseModel):
    """Configuração da Z-API salva em tempo de execução pelo admin."""
    base_url: str = Field(..., min_length=1)
    client_token: str = Field(..., min_length=1)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

class GatewayConfigResponse(BaseModel):
    base_url: Optional[str] = None
    client_token_masked: Optional[str] = None
    configured: bool
    source: Literal["runtime", "environment", "none"]

class GatewayStatus(BaseModel):
    configured: bool
    status: Dict[str, Any] = Field(default_factory=dict)
