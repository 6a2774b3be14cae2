import enum
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, JSON, func
from sqlalchemy.dialects.postgresql import UUID as SQLAlchemyUUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.ext.declarative import declared_attr

from portal.db.base_class import Base

class MessageType(str, enum.Enum):
    REMINDER = "reminder"
    COMPLETION = "completion"
    WELCOME = "welcome"
    FOLLOW_UP = "follow_up"
    DEADLINE = "deadline"

class MessageTemplate(Base):
    """
    Template de mensagem WhatsApp com placeholders no formato {variavel}.
    A lista `variables` é apenas documentação e não é validada contra o conteúdo.
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return "message_templates"

    id: Mapped[uuid.UUID] = mapped_column(SQLAlchemyUUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(20), index=True)
    content: Mapped[str] = mapped_column(Text)
    variables: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
