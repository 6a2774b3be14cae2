import secrets
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field

class Settings(BaseSettings):
    # Configurações gerais
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Portal de Documentos API"
    LOG_LEVEL: str = "INFO"

    # CORS - definido como string para evitar problemas de parsing
    CORS_ORIGINS_STR: str = "http://localhost:8000,http://localhost:5173"

    @computed_field
    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Converte a string CORS_ORIGINS_STR em uma lista."""
        if not self.CORS_ORIGINS_STR:
            return ["http://localhost:8000", "http://localhost:5173"]
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(",") if origin.strip()]

    # Database
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "portal"
    POSTGRES_PASSWORD: str = "portal"
    POSTGRES_DB: str = "portal"
    DATABASE_URL: str | None = None  # Será carregado do .env
    RUN_MIGRATIONS: bool = True

    @property
    def database_url(self) -> str:
        """
        Gera a URL do banco de dados se não for especificada.
        Certifica-se de usar o prefixo postgresql+asyncpg:// para conexões assíncronas.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis (rate-limit, refresh tokens e configuração da Z-API)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    RATE_LIMIT_ENABLED: bool = True

    # Auth
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ALGORITHM: str = "HS256"

    # Email que recebe o papel de admin no cadastro
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_INITIAL_PASSWORD: str = "adminpassword"
    PASSWORD_MIN_LENGTH: int = 6

    # Configuração de documentos usada quando a startup não tem uma atribuída
    DEFAULT_DOCUMENT_CONFIG_ID: str = "default"

    # Armazenamento de arquivos
    STORAGE_DIR: str = "storage"
    STORAGE_PUBLIC_URL: str = "/api/v1/documents/files"
    MAX_UPLOAD_SIZE_MB: int = 10
    ALLOWED_UPLOAD_TYPES: List[str] = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/png",
        "image/jpg",
    ]

    # Z-API (gateway WhatsApp)
    ZAPI_BASE_URL: str | None = None
    ZAPI_CLIENT_TOKEN: str | None = None
    ZAPI_TIMEOUT_SECONDS: float = 15.0

    # Intervalo fixo entre envios no lembrete em massa
    BULK_REMINDER_DELAY_SECONDS: float = 1.0

    # Feed de eventos em memória
    EVENT_FEED_MAX_EVENTS: int = 50

    # Prometheus
    ENABLE_PROMETHEUS: bool = True

    # Configuração para carregar de arquivo .env
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

# Instância global para uso em toda a aplicação
settings = Settings()
