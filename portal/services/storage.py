"""
Armazenamento dos arquivos enviados pelas startups.

Implementação em disco local com aiofiles. O restante da aplicação só
conhece `upload`, `delete` e `read`, então trocar por um bucket S3 não
afeta os chamadores. A instância é criada no lifespan via
`init_storage_service()`.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from portal.core.config import settings

logger = logging.getLogger(__name__)

class StorageError(Exception):
    """Falha ao gravar, ler ou remover um arquivo."""

@dataclass
class StoredFile:
    url: str
    path: str

class StorageService:
    """Armazena arquivos sob um diretório raiz, endereçados por caminho relativo."""

    def __init__(self, root_dir: str, public_url: str):
        self.root = Path(root_dir).resolve()
        self.public_url = public_url.rstrip("/")

    def _full_path(self, path: str) -> Path:
        full_path = (self.root / path).resolve()
        # Impede que um caminho relativo saia do diretório raiz
        if self.root not in full_path.parents:
            raise StorageError(f"Caminho inválido: {path}")
        return full_path

    @staticmethod
    def build_path(startup_id: uuid.UUID, category_id: str, filename: str) -> str:
        """Caminho do objeto: {startup_id}/{categoria}/{uuid}_{arquivo}."""
        safe_name = os.path.basename(filename) or "arquivo"
        safe_category = os.path.basename(category_id) or "geral"
        return f"{startup_id}/{safe_category}/{uuid.uuid4().hex}_{safe_name}"

    async def upload(self, data: bytes, path: str, content_type: str) -> StoredFile:
        full_path = self._full_path(path)
        try:
            await aiofiles.os.makedirs(full_path.parent, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Erro ao gravar arquivo {path}: {e}")
            raise StorageError(f"Falha no upload do arquivo: {e}") from e

        logger.debug(f"Arquivo gravado: {path} ({len(data)} bytes, {content_type})")
        return StoredFile(url=f"{self.public_url}/{path}", path=path)

    async def delete(self, path: str) -> None:
        """Remove o arquivo. Arquivo inexistente não é erro."""
        full_path = self._full_path(path)
        try:
            await aiofiles.os.remove(full_path)
        except FileNotFoundError:
            logger.warning(f"Arquivo já removido do armazenamento: {path}")
        except OSError as e:
            logger.error(f"Erro ao remover arquivo {path}: {e}")
            raise StorageError(f"Falha ao remover arquivo: {e}") from e

    async def read(self, path: str) -> bytes:
        full_path = self._full_path(path)
        try:
            async with aiofiles.open(full_path, "rb") as f:
                return await f.read()
        except FileNotFoundError as e:
            raise StorageError(f"Arquivo não encontrado: {path}") from e
        except OSError as e:
            logger.error(f"Erro ao ler arquivo {path}: {e}")
            raise StorageError(f"Falha ao ler arquivo: {e}") from e

# ---------------------------------------------------------------------------
# Instância do processo
# ---------------------------------------------------------------------------

_service: StorageService | None = None

def init_storage_service(root_dir: str | None = None, public_url: str | None = None) -> StorageService:
    """Inicializa a instância (chamado no lifespan da aplicação)."""
    global _service
    _service = StorageService(
        root_dir=root_dir or settings.STORAGE_DIR,
        public_url=public_url or settings.STORAGE_PUBLIC_URL,
    )
    logger.info(f"StorageService inicializado em {_service.root}")
    return _service

def get_storage_service() -> StorageService:
    """Dependência FastAPI. Inicializa sob demanda se o lifespan não rodou."""
    if _service is None:
        return init_storage_service()
    return _service
