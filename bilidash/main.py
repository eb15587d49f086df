"""
Bilidash — Main FastAPI Application

Video metadata dashboard backend: project records, analytics and AI chat.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from bilidash.core.config import get_settings
from bilidash.core.document_store import DocumentStoreError, create_document_store
from bilidash.services.chat.chat_service import ChatService, create_chat_client
from bilidash.services.projects.project_service import ProjectService

settings = get_settings()

# ── Logging ──────────────────────────────────────────────────────────────

logging.basicConfig(level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
)

logger = structlog.get_logger()


# ── Lifespan ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the long-lived clients once and release them on shutdown."""
    logger.info("Starting Bilidash", version=settings.app_version)

    store = create_document_store(settings)
    await store.connect()
    chat_service = ChatService(
        create_chat_client(settings),
        model=settings.chat_model,
        temperature=settings.chat_temperature,
    )

    app.state.document_store = store
    app.state.project_service = ProjectService(store, cover_base_url=settings.cover_base_url)
    app.state.chat_service = chat_service

    logger.info(
        "Bilidash ready",
        document_store=settings.document_store_backend,
        chat_enabled=chat_service.available,
        chat_model=settings.chat_model,
    )

    yield

    await chat_service.close()
    await store.close()
    logger.info("Shutting down Bilidash")


# ── App ──────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Bilidash",
    description="Crawled video metadata dashboard: normalization, analytics and AI chat",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.exception_handler(DocumentStoreError)
async def document_store_error_handler(request: Request, exc: DocumentStoreError):
    logging.getLogger(__name__).error(f"Document store failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ── Routes ───────────────────────────────────────────────────────────────

from bilidash.api.routes import chat, projects

app.include_router(projects.router, prefix=settings.api_prefix)
app.include_router(chat.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "chat_enabled": app.state.chat_service.available}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
