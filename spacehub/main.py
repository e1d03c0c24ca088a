"""
FastAPI application entry point.
"""

import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from spacehub.api.errors import register_exception_handlers
from spacehub.api.routes import router as api_router
from spacehub.config import settings
from spacehub.core.blob_store import LocalBlobStore
from spacehub.core.kv_store import create_kv_store
from spacehub.core.logging import configure_logging
from spacehub.core.oauth import GoogleOAuthProvider
from spacehub.core.rag_client import RAGClient
from spacehub.db.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging("DEBUG" if settings.debug else settings.log_level)
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s", settings.environment)

    os.makedirs(settings.upload_dir, exist_ok=True)
    await init_db()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.kv_store.close()
    await app.state.http_client.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant document spaces with role-based sharing and RAG chat.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Collaborators are built once here and shared through app.state
    http_client = httpx.AsyncClient(timeout=settings.rag_timeout_seconds)
    app.state.http_client = http_client
    app.state.kv_store = create_kv_store(settings.redis_url)
    app.state.rag_client = RAGClient(
        http_client,
        settings.rag_server_base_url,
        chat_path=settings.rag_chat_path,
        upload_document_path=settings.rag_upload_document_path,
        remove_document_path=settings.rag_remove_document_path,
        remove_space_path=settings.rag_remove_space_path,
    )
    app.state.blob_store = LocalBlobStore(settings.upload_dir, settings.blob_base_url)
    app.state.oauth_providers = {
        "google": GoogleOAuthProvider(
            http_client,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_url=settings.google_redirect_url,
        ),
    }

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routes
    app.include_router(api_router, prefix="/api")
    app.mount("/files", StaticFiles(directory=settings.upload_dir, check_dir=False), name="files")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "spacehub.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
