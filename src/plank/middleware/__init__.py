"""Middleware registration."""

from fastapi import FastAPI

from plank.config import Settings
from plank.middleware.cors import setup_cors
from plank.middleware.error_handler import setup_error_handlers
from plank.middleware.logging import setup_logging
from plank.middleware.rate_limit import RateLimitMiddleware
from plank.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. Starlette runs them in reverse-add order.

    CORS is added last so it is outermost and also decorates 429 responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
