import enum
import uuid
from datetime import datetime
from sqlalchemy import Boolean, String, DateTime, func
from sqlalchemy.dialects.postgresql import UUID as SQLAlchemyUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.db.base_class import Base

class UserRole(str, enum.Enum):
    STARTUP = "startup"
    ADMIN = "admin"

class StartupStatus(str, enum.Enum):
    """Situação do processo de envio de documentos da startup."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    UNDER_REVIEW = "under_review"

class User(Base):
    """
    Perfil de usuário: startups (candidatas) e admins do back office.
    O papel é definido no cadastro e não é alterado depois.
    """

    id: Mapped[uuid.UUID] = mapped_column(SQLAlchemyUUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="")
    role: Mapped[str] = mapped_column(String(20), default=UserRole.STARTUP.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    cnpj: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Referência "fraca": não é FK, uma configuração removida vira "sem configuração"
    document_config_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=StartupStatus.PENDING.value)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    whatsapp_group_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relacionamentos
    documents = relationship("UploadedDocument", back_populates="owner", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="startup", cascade="all, delete-orphan")
