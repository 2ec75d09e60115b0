import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from diagram_sync.api.http.health import router as health_router
from diagram_sync.api.router import api_router
from diagram_sync.core.config import settings
from diagram_sync.core.db import create_tables
from diagram_sync.core.errors import register_exception_handlers
from diagram_sync.core.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        await create_tables()
        logger.info("Database schema is up to date")
    if settings.oidc_enabled:
        logger.info(f"OIDC sign-in enabled for issuer {settings.oidc_issuer_url}")
    yield


app = FastAPI(
    title="Diagram Sync",
    description="Синхронизация и история версий диаграмм баз данных",
    version="1.0.0",
    lifespan=lifespan
)

# cookie сессии требует allow_credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Подключаем роутеры
app.include_router(health_router)
app.include_router(api_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "Diagram Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
