from sqlalchemy.ext.asyncio import AsyncSession
import logging
from sqlalchemy import select

from portal.db.base import Base
from portal.db.session import engine
from portal.models.user import User, UserRole
from portal.core.config import settings
from portal.core.security import hash_password
from portal.services import document_configs

logger = logging.getLogger(__name__)

async def init_db(db: AsyncSession) -> None:
    """
    Inicializa o banco de dados com dados iniciais.
    Chamada durante a inicialização da aplicação, depois das migrações.
    """
    logger.info("Garantindo que todas as tabelas foram criadas...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tabelas verificadas/criadas.")

    await seed_default_config(db)
    await seed_admin(db)

    logger.info("Banco de dados inicializado com sucesso")

async def seed_default_config(db: AsyncSession) -> None:
    """Cria a configuração padrão de documentos se ela não existir."""
    config_id = settings.DEFAULT_DOCUMENT_CONFIG_ID
    if await document_configs.get_by_id(db, config_id) is not None:
        logger.info(f"Configuração padrão '{config_id}' já existe, pulando seed.")
        return

    logger.info(f"Criando configuração padrão de documentos '{config_id}'")
    await document_configs.create(
        db,
        name="Configuração Padrão",
        description="Documentos solicitados por padrão às startups",
        categories=document_configs.DEFAULT_CATEGORIES,
        created_by="system",
        config_id=config_id,
    )

async def seed_admin(db: AsyncSession) -> None:
    """Cria a conta do admin configurado, se ainda não existir."""
    result = await db.execute(select(User).where(User.email == settings.ADMIN_EMAIL))
    if result.scalar_one_or_none():
        logger.info("Usuário admin já existe, pulando seed do admin.")
        return

    logger.info("Criando usuário admin inicial")
    db.add(User(
        email=settings.ADMIN_EMAIL,
        hashed_password=hash_password(settings.ADMIN_INITIAL_PASSWORD),
        name="Administrador",
        role=UserRole.ADMIN.value,
        is_active=True
    ))
    await db.commit()
