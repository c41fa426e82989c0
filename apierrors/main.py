"""FastAPI application entrypoint for apierrors."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from apierrors.core.config import ErrorHandlingSettings
from apierrors.core.config import get_error_settings
from apierrors.core.errors import register_error_handlers
from apierrors.core.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: ErrorHandlingSettings | None = None) -> FastAPI:
    """Build the host application with every error handler attached."""
    settings = settings or get_error_settings()
    configure_logging(settings.log_level)
    logger.info("Registering error handlers with settings=%s", settings.safe_for_logging())

    application = FastAPI(title="apierrors")
    register_error_handlers(application, settings=settings)

    @application.get("/health")
    def health() -> dict[str, str]:
        """Health check stub endpoint for service readiness."""
        return {"status": "ok"}

    return application


app = create_app()
