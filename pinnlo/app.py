"""
FastAPI application entry point for the PINNLO API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from pinnlo.config import get_settings
from pinnlo.responses import install_error_handlers
from pinnlo.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="PINNLO API", version="0.1.0")
    install_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/health")
    def health():
        return {"success": True, "status": "ok"}

    return app


app = create_app()
