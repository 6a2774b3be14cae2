import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

class MigrationError(Exception):
    pass

async def run_migrations() -> bool:
    """
    Executa `alembic upgrade head` num subprocesso.

    Raises:
        FileNotFoundError: se o diretório `alembic` não existir
        MigrationError: se o Alembic terminar com erro
    """
    logger.info("Aplicando migrações do banco de dados...")

    alembic_dir = Path("alembic")
    if not alembic_dir.is_dir():
        logger.error("Diretório de migrações 'alembic' não encontrado.")
        raise FileNotFoundError("Diretório de migrações 'alembic' não encontrado.")

    process = await asyncio.create_subprocess_exec(
        "alembic", "upgrade", "head",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    stdout, stderr = await process.communicate()

    if process.returncode != 0:
        error_msg = stderr.decode().strip() if stderr else "Código de saída não-zero"
        logger.error(f"Erro ao aplicar migrações: {error_msg}")
        raise MigrationError(f"Falha ao aplicar migrações Alembic: {error_msg}")

    logger.info("Migrações aplicadas com sucesso!")
    if stdout:
        logger.debug(f"Saída das migrações: {stdout.decode().strip()}")
    return True
