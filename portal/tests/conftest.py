"""
Configuração para testes da aplicação.

Os testes usam SQLite em memória (aiosqlite), um Redis em dicionário, um
gateway WhatsApp falso que registra as chamadas e um diretório temporário
para os arquivos. O rate limit é desligado.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RUN_MIGRATIONS", "false")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator, Dict, List, Optional, Set
import uuid

from portal.api.v1.deps import get_gateway, get_redis, limiter
from portal.core.config import settings
from portal.core.security import hash_password, create_access_token
from portal.db.base import Base
from portal.db.session import get_db
from portal.main import app as fastapi_app
from portal.models.document_config import DocumentConfig
from portal.models.user import StartupStatus, User, UserRole
from portal.schemas.messaging import SendResult, WhatsAppGroup
from portal.services.events import EventBus, get_event_bus
from portal.services.storage import StorageService, get_storage_service
from portal.services.zapi import GatewayNotConfiguredError

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Duas categorias, cada uma com um item obrigatório e um opcional
TEST_CATEGORIES = [
    {
        "id": "juridico",
        "name": "Jurídico",
        "documents": [
            {"id": "contrato-social", "name": "Contrato social", "required": True, "description": None},
            {"id": "acordo-socios", "name": "Acordo de sócios", "required": False, "description": None},
        ],
    },
    {
        "id": "financeiro",
        "name": "Financeiro",
        "documents": [
            {"id": "dre", "name": "DRE", "required": True, "description": None},
            {"id": "projecoes", "name": "Projeções", "required": False, "description": None},
        ],
    },
]

class MockRedis:
    """Redis em memória com os comandos usados pela aplicação."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    async def set(self, key, value, ex=None, *args, **kwargs):
        self.data[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value
        return True

    async def get(self, key):
        return self.data.get(key)

    async def exists(self, key):
        return 1 if key in self.data else 0

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

class FakeGateway:
    """Gateway WhatsApp falso: registra os envios e falha para os destinos em `fail_targets`."""

    def __init__(self, configured: bool = True):
        self.base_url = "https://zapi.test/instances/abc/token/xyz" if configured else None
        self.client_token = "token-teste" if configured else None
        self.sent: List[Dict[str, str]] = []
        self.fail_targets: Set[str] = set()
        self.groups: List[WhatsAppGroup] = [WhatsAppGroup(id="120363@g.us", name="Startup Teste", participants=3)]

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.client_token)

    async def send_text(self, target: str, message: str) -> SendResult:
        if not self.configured:
            raise GatewayNotConfiguredError("Z-API não configurado")
        self.sent.append({"target": target, "message": message})
        if target in self.fail_targets:
            return SendResult(success=False, error="HTTP 500")
        return SendResult(success=True, message_id=f"msg-{len(self.sent)}")

    async def fetch_groups(self, page: int = 1, page_size: int = 20) -> List[WhatsAppGroup]:
        return self.groups

    async def get_status(self) -> Dict[str, bool]:
        return {"connected": True}

@pytest_asyncio.fixture
async def db_engine():
    """Banco em memória novo para cada teste."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Fornece uma sessão de banco de dados para testes."""
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

@pytest_asyncio.fixture
async def test_redis() -> MockRedis:
    return MockRedis()

@pytest_asyncio.fixture
async def fake_gateway() -> FakeGateway:
    return FakeGateway()

@pytest_asyncio.fixture
async def storage(tmp_path) -> StorageService:
    return StorageService(root_dir=str(tmp_path / "storage"), public_url=settings.STORAGE_PUBLIC_URL)

@pytest_asyncio.fixture
async def event_bus() -> AsyncGenerator[EventBus, None]:
    bus = EventBus(max_events=settings.EVENT_FEED_MAX_EVENTS)
    bus.start()
    yield bus
    bus.shutdown()

@pytest_asyncio.fixture
async def async_client(
    db_session: AsyncSession,
    test_redis: MockRedis,
    fake_gateway: FakeGateway,
    storage: StorageService,
    event_bus: EventBus,
) -> AsyncGenerator[AsyncClient, None]:
    """Fornece um cliente HTTP assíncrono com as dependências externas substituídas."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_redis] = lambda: test_redis
    fastapi_app.dependency_overrides[get_gateway] = lambda: fake_gateway
    fastapi_app.dependency_overrides[get_storage_service] = lambda: storage
    fastapi_app.dependency_overrides[get_event_bus] = lambda: event_bus
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as client:
        yield client

    fastapi_app.dependency_overrides.clear()

async def create_user(
    db: AsyncSession,
    email: str,
    role: str = UserRole.STARTUP.value,
    name: str = "Startup Teste",
    phone: Optional[str] = None,
    whatsapp_group_id: Optional[str] = None,
    status: str = StartupStatus.PENDING.value,
    document_config_id: Optional[str] = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        hashed_password=hash_password("testpassword"),
        name=name,
        role=role,
        phone=phone,
        whatsapp_group_id=whatsapp_group_id,
        status=status,
        document_config_id=document_config_id,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user

def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}

@pytest_asyncio.fixture
async def default_config(db_session: AsyncSession) -> DocumentConfig:
    """Configuração padrão com duas categorias (1 obrigatório + 1 opcional cada)."""
    config = DocumentConfig(
        id=settings.DEFAULT_DOCUMENT_CONFIG_ID,
        name="Padrão",
        categories=[dict(c, documents=[dict(d) for d in c["documents"]]) for c in TEST_CATEGORIES],
        revision=1,
    )
    db_session.add(config)
    await db_session.commit()
    await db_session.refresh(config)
    return config

@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Startup de teste com telefone cadastrado."""
    return await create_user(db_session, "startup@example.com", phone="(21) 98765-4321")

@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, settings.ADMIN_EMAIL, role=UserRole.ADMIN.value, name="Admin")

@pytest_asyncio.fixture
async def user_token_headers(test_user: User) -> Dict[str, str]:
    """Headers com token de acesso da startup de teste."""
    return auth_headers(test_user)

@pytest_asyncio.fixture
async def admin_token_headers(test_admin: User) -> Dict[str, str]:
    """Headers com token de acesso do admin de teste."""
    return auth_headers(test_admin)

@pytest_asyncio.fixture
async def make_startup(db_session: AsyncSession):
    """Fábrica de startups: `await make_startup("email", phone=..., status=...)`."""
    async def factory(email: str, **kwargs) -> User:
        return await create_user(db_session, email, **kwargs)
    return factory
