"""
FastAPI application entry point for the SlimCircle API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from slimcircle.config import get_settings
from slimcircle.errors import register_error_handlers
from slimcircle.routes import router
from models import api_config


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.anthropic_api_key:
        api_config.DEFAULT_API_KEY = settings.anthropic_api_key
    api_config.DEFAULT_MODEL = settings.anthropic_model

    app = FastAPI(title="SlimCircle API", version="0.1.0")
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
