from __future__ import annotations
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import install_error_handlers, router
from app.middleware import RequestLogMiddleware
from app.web import router as web_router
from datastore.document_store import DocumentStore, build_default_store
from logging_config import configure_logging
from services.resources import build_services
from settings import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    store: Optional[DocumentStore] = app.state.store
    if store is None:
        # Fatal at startup when persisted collections cannot be opened.
        store = build_default_store()
    app.state.services = build_services(store)
    try:
        yield
    finally:
        app.state.services = None


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Build the application; a given ``store`` replaces the default one."""
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="Sensor Registry",
        description="CRUD service for machines, their sensors and sensor data.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.services = None
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(router)
    if settings.admin_enabled:
        static_dir = Path(__file__).resolve().parent / "static"
        app.mount("/static", StaticFiles(directory=static_dir), name="static")
        app.include_router(web_router)
    return app


def run() -> None:
    """Serve the default application on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


app = create_app()
