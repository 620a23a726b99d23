"""Middleware registration."""

from fastapi import FastAPI

from examprep.config import Settings
from examprep.middleware.error_handler import setup_error_handlers
from examprep.middleware.logging import setup_logging
from examprep.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, register error handlers, and add request-id middleware."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
