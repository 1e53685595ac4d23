"""Middleware registration."""

from fastapi import FastAPI

from curate.config import Settings
from curate.middleware.cors import setup_cors
from curate.middleware.error_handler import setup_error_handlers
from curate.middleware.logging import setup_logging
from curate.middleware.rate_limit import RateLimitMiddleware
from curate.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS goes last so it also wraps 429 responses from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
