import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docvault.api.http import auth_router, branches_router, documents_router, health_router, sharing_router
from docvault.api.http.deps import document_error_handler
from docvault.client import DocVault
from docvault.core.config import Settings, settings as default_settings
from docvault.core.errors import DocumentError

logger = logging.getLogger(__name__)


def create_app(vault: Optional[DocVault] = None, config: Optional[Settings] = None) -> FastAPI:
    """Сборка приложения; без vault пир создается при старте по настройкам"""
    config = config or default_settings
    logging.basicConfig(level=config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_vault = getattr(app.state, "vault", None) is None
        if owns_vault:
            app.state.vault = await DocVault.from_settings(config)
        logger.info(f"DocVault peer {app.state.vault.peer_id} started")
        yield
        if owns_vault:
            await app.state.vault.close()

    app = FastAPI(
        title="DocVault",
        description="Ключи шифрования документов и совместный доступ",
        version="1.0.0",
        lifespan=lifespan,
    )
    if vault is not None:
        app.state.vault = vault

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DocumentError, document_error_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(documents_router)
    app.include_router(sharing_router)
    app.include_router(branches_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "DocVault API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
