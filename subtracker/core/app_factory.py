from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .container import ApplicationContainer
from .dependencies import get_settings
from .logging import configure_logging
from ..application.services.subscription_service import SubscriptionService
from ..domain.ports.persistence import SubscriptionRepository
from ..infrastructure.persistence.memory import InMemorySubscriptionRepository
from ..infrastructure.persistence.sqlite import SQLiteSubscriptionRepository
from ..presentation.api.routers import subscriptions as subscriptions_router
from ..presentation.middleware.request_logging import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    repository: Optional[SubscriptionRepository] = None,
) -> FastAPI:
    """Build the ASGI app. A pre-built repository is used as-is and left open on shutdown."""
    settings = settings or Settings()

    app = FastAPI(
        title="Subscription Tracker API",
        version="1.0.0",
        lifespan=_create_lifespan(settings, repository),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(subscriptions_router.router)

    @app.get("/health")
    async def health(current: Settings = Depends(get_settings)) -> Dict[str, Any]:
        return {"ok": True, "env": current.app_env, "storage": current.storage_backend}

    return app


def build_repository(settings: Settings) -> SubscriptionRepository:
    if settings.storage_backend == "memory":
        return InMemorySubscriptionRepository()
    return SQLiteSubscriptionRepository(settings.database_path)


def _create_lifespan(settings: Settings, repository: Optional[SubscriptionRepository]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level, settings.log_format)
        owned = repository is None
        store = build_repository(settings) if owned else repository
        logger.info("Using %s subscription storage", type(store).__name__)

        app.state.container = ApplicationContainer(  # type: ignore[attr-defined]
            settings=settings,
            repository=store,
            subscription_service=SubscriptionService(store),
        )

        try:
            yield
        finally:
            if owned:
                store.close()

    return lifespan


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid request")
    logger.warning(
        "Rejected request body for %s",
        request.url.path,
        extra={"field": location or "body", "error": message},
    )
    detail = f"invalid {location}: {message}" if location else "invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})
