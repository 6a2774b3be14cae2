import enum
import uuid
from datetime import datetime, timezone
from sqlalchemy import Boolean, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.dialects.postgresql import UUID as SQLAlchemyUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.ext.declarative import declared_attr

from portal.db.base_class import Base

class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    VERIFIED = "verified"
    REJECTED = "rejected"

class UploadedDocument(Base):
    """
    Registro de um arquivo enviado por uma startup.

    `category` guarda o id da categoria e `name` guarda o id do item da
    configuração (não o nome de exibição). O par é a chave de comparação
    com a configuração de documentos.
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return "documents"

    id: Mapped[uuid.UUID] = mapped_column(SQLAlchemyUUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    startup_id: Mapped[uuid.UUID] = mapped_column(SQLAlchemyUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    category: Mapped[str] = mapped_column(String(100))
    name: Mapped[str] = mapped_column(String(255))

    file_url: Mapped[str] = mapped_column(String(1000))
    file_path: Mapped[str] = mapped_column(String(1000))
    file_size: Mapped[int] = mapped_column(Integer)  # Tamanho em bytes
    file_type: Mapped[str] = mapped_column(String(255))
    original_filename: Mapped[str] = mapped_column(String(255))

    status: Mapped[str] = mapped_column(String(20), default=DocumentStatus.UPLOADED.value)
    required: Mapped[bool] = mapped_column(Boolean, default=False)  # Copiado no momento do upload
    is_extra: Mapped[bool] = mapped_column(Boolean, default=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now())

    # Relacionamento
    owner = relationship("User", back_populates="documents")
