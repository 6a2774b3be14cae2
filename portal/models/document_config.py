import uuid
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.ext.declarative import declared_attr

from portal.db.base_class import Base

def generate_config_id() -> str:
    return uuid.uuid4().hex

class DocumentConfig(Base):
    """
    Modelo de configuração de documentos: categorias e itens exigidos.
    As categorias ficam num único campo JSON e são sempre regravadas por inteiro.
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return "document_configs"

    # String para permitir o id conhecido "default"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_config_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    categories: Mapped[list] = mapped_column(JSON, default=list)  # [{id, name, documents: [{id, name, required, description}]}]
    revision: Mapped[int] = mapped_column(Integer, default=1)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
