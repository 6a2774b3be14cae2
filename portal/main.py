from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html, get_redoc_html
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
import logging
import time
from contextlib import asynccontextmanager

from portal.api.health import router as health_router
from portal.api.v1.deps import limiter
from portal.api.v1.endpoints.auth import router as auth_router
from portal.api.v1.endpoints.document_configs import router as document_configs_router
from portal.api.v1.endpoints.documents import router as documents_router
from portal.api.v1.endpoints.events import router as events_router
from portal.api.v1.endpoints.message_templates import router as message_templates_router
from portal.api.v1.endpoints.messaging import router as messaging_router
from portal.api.v1.endpoints.progress import router as progress_router
from portal.api.v1.endpoints.startups import router as startups_router
from portal.core.config import settings
from portal.db.init_db import init_db
from portal.db.session import AsyncSessionLocal
from portal.db.migrations import run_migrations
from portal.services.events import init_event_bus, shutdown_event_bus
from portal.services.storage import init_storage_service

from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.RUN_MIGRATIONS:
        try:
            await run_migrations()
        except Exception as e:
            logger.error(f"Falha ao aplicar migrações: {e}")
            raise

    logger.info("Inicializando banco de dados...")
    async with AsyncSessionLocal() as db:
        await init_db(db)
    logger.info("Banco de dados inicializado com sucesso!")

    init_storage_service()
    events = init_event_bus(settings.EVENT_FEED_MAX_EVENTS)
    events.info("Portal iniciado", f"{settings.PROJECT_NAME} pronto para receber requisições")

    yield

    shutdown_event_bus()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API do portal de envio de documentos das startups e do back office de acompanhamento",
    version="1.0.0",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

app.state.limiter = limiter

@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request, exc):
    return JSONResponse(
        status_code=429,
        content={"detail": "Limite de requisições excedido. Tente novamente mais tarde."},
    )

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rotas Swagger e ReDoc servidas a partir de CDN
@app.get("/docs", include_in_schema=False)
async def custom_swagger_ui_html():
    return get_swagger_ui_html(
        openapi_url=app.openapi_url,
        title=f"{app.title} - Swagger UI",
        oauth2_redirect_url=app.swagger_ui_oauth2_redirect_url,
        swagger_js_url="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui-bundle.js",
        swagger_css_url="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui.css",
        swagger_ui_parameters={
            "docExpansion": "none",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )

@app.get("/redoc", include_in_schema=False)
async def redoc_html():
    return get_redoc_html(
        openapi_url=app.openapi_url,
        title=f"{app.title} - ReDoc",
        redoc_js_url="https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js",
    )

# Inclusão das rotas
app.include_router(health_router, tags=["Health"])
app.include_router(auth_router, prefix=settings.API_V1_STR, tags=["Autenticação"])
app.include_router(document_configs_router, prefix=settings.API_V1_STR, tags=["Configuração de Documentos"])
app.include_router(documents_router, prefix=settings.API_V1_STR, tags=["Documentos"])
app.include_router(progress_router, prefix=settings.API_V1_STR, tags=["Progresso"])
app.include_router(startups_router, prefix=settings.API_V1_STR, tags=["Startups"])
app.include_router(message_templates_router, prefix=settings.API_V1_STR, tags=["Templates de Mensagem"])
app.include_router(messaging_router, prefix=settings.API_V1_STR, tags=["Mensagens"])
app.include_router(events_router, prefix=settings.API_V1_STR, tags=["Eventos"])

# Configuração do Prometheus (métricas)
if settings.ENABLE_PROMETHEUS:
    instrumentator = Instrumentator()
    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    from prometheus_client import Counter, Histogram

    # Contador de requisições por endpoint
    REQUESTS_COUNTER = Counter(
        "portal_api_requests_total",
        "Total de requisições por endpoint",
        ["endpoint", "method", "status_code"]
    )

    # Histograma de tempo de resposta
    RESPONSE_TIME = Histogram(
        "portal_api_response_time_seconds",
        "Tempo de resposta em segundos",
        ["endpoint", "method"]
    )

    @app.middleware("http")
    async def add_metrics(request, call_next):
        start_time = time.time()
        response = await call_next(request)

        endpoint = request.url.path
        method = request.method
        REQUESTS_COUNTER.labels(endpoint=endpoint, method=method, status_code=response.status_code).inc()
        RESPONSE_TIME.labels(endpoint=endpoint, method=method).observe(time.time() - start_time)

        return response
