"""Email Subscribe API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SubscribeError → structured JSON responses
    - CORS configured from settings; methods limited to the ones the API serves
    - The record store is opened in the lifespan; failing to open it aborts startup
    - One RecordStore and one SubscriptionService per app, kept on app.state

Design Decisions:
    - Lifespan over @app.on_event: cleanup runs even when startup fails half-way
    - create_app() factory so tests and the CLI build apps from explicit Settings
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from email_subscribe.api.error_handlers import register_error_handlers
from email_subscribe.api.request_logging import RequestLoggingMiddleware
from email_subscribe.api.routes import email, health
from email_subscribe.config import Settings, get_settings
from email_subscribe.infrastructure.mail_exchange import MailExchangeChecker
from email_subscribe.infrastructure.observability import setup_logging
from email_subscribe.infrastructure.record_store import RecordStore
from email_subscribe.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["OPTIONS", "GET", "POST", "PATCH", "DELETE"]


def build_service(store: RecordStore, settings: Settings) -> SubscriptionService:
    """Wire the service with or without the mail-exchange step."""
    checker = None
    if not settings.skip_domain_check:
        checker = MailExchangeChecker(timeout_seconds=settings.dns_timeout_seconds)
    else:
        logger.warning("Domain reachability check disabled (skip_domain_check)")
    return SubscriptionService(store, domain_checker=checker)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        store = await RecordStore.open(
            settings.store_path,
            bucket=settings.store_bucket,
            busy_timeout_seconds=settings.store_busy_timeout_seconds,
        )
        app.state.subscription_service = build_service(store, settings)
        logger.info("Email Subscribe API started")
        try:
            yield
        finally:
            logger.info("Email Subscribe API shutting down")
            app.state.subscription_service = None
            await store.close()

    app = FastAPI(
        title="Email Subscribe API", version="0.1.0", lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=ALLOWED_METHODS,
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router)
    app.include_router(email.router)

    register_error_handlers(app)
    return app


app = create_app()
