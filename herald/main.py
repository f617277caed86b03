"""Application factory.

:func:`create_app` wires settings, the token service, the document store,
image storage, the broadcaster, the notifier and the publishing service onto
``app.state``.  Tests pass in-memory collaborators; in production they are
built from :class:`~herald.config.Settings`.

Run with ``python -m herald serve`` or
``uvicorn --factory herald.main:create_app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator
from typing import Optional

from fastapi import FastAPI
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from herald.auth.tokens import TokenService
from herald.config import Settings
from herald.config import get_settings
from herald.constants import API_PREFIX
from herald.errors import AuthError
from herald.errors import HeraldError
from herald.errors import ValidationError
from herald.events.broadcaster import EventBroadcaster
from herald.routers.admin import router as admin_router
from herald.routers.auth import router as auth_router
from herald.routers.content import router as content_router
from herald.routers.events import router as events_router
from herald.routers.system import router as system_router
from herald.routers.visitors import router as visitors_router
from herald.services.image_storage import ImageStorage
from herald.services.notifier import Notifier
from herald.services.publishing import PublishingService
from herald.store.base import DocumentStore

logger = logging.getLogger(__name__)

# Known-noisy modules stay at WARNING unless LOG_LEVEL=DEBUG.
_NOISY_LOGGERS = ("httpx", "sse_starlette", "herald.events.broadcaster")


def configure_logging(settings: Settings) -> None:
    """Apply ``LOG_LEVEL`` to the root logger."""

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    if level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def _envelope(status_code: int, error: str, details: Optional[str] = None, headers=None) -> JSONResponse:
    content = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def _herald_error_handler(request: Request, exc: HeraldError) -> JSONResponse:
    if isinstance(exc, AuthError):
        # Reason stays server-side; the client only learns "unauthorized".
        return _envelope(exc.status_code, exc.public_message, headers={"WWW-Authenticate": "Bearer"})
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s (%s)", type(exc).__name__, request.method, request.url.path, exc, exc.details)
    body = exc.envelope()
    return _envelope(exc.status_code, body["error"])


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "request"
    error = ValidationError(field, first.get("msg", "is invalid"))
    details = f"{len(errors) - 1} more invalid field(s)" if len(errors) > 1 else None
    return _envelope(error.status_code, error.envelope()["error"], details)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _envelope(exc.status_code, detail, headers=getattr(exc, "headers", None))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return _envelope(500, "Internal server error")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[DocumentStore] = None,
    images: Optional[ImageStorage] = None,
    notifier: Optional[Notifier] = None,
    broadcaster: Optional[EventBroadcaster] = None,
) -> FastAPI:
    """Build the FastAPI application with its collaborators."""

    settings = settings or get_settings()
    configure_logging(settings)

    if store is None:
        from herald.store.firestore import FirestoreDocumentStore

        store = FirestoreDocumentStore.from_settings(settings)
    if images is None:
        from herald.services.image_storage import GCSImageStorage

        images = GCSImageStorage.from_settings(settings)
    if notifier is None:
        notifier = Notifier(settings.notify_webhook_url)
    if not notifier.enabled:
        logger.warning("NOTIFY_WEBHOOK_URL not set – visitor notifications are disabled")
    broadcaster = broadcaster or EventBroadcaster()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Herald started")
        yield
        await notifier.drain()
        await store.close()
        logger.info("Herald stopped")

    app = FastAPI(title="Herald", redirect_slashes=True, lifespan=lifespan)

    app.state.settings = settings
    app.state.tokens = TokenService(settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours))
    app.state.broadcaster = broadcaster
    app.state.notifier = notifier
    app.state.publishing = PublishingService(store, images, broadcaster, notifier)

    app.add_exception_handler(HeraldError, _herald_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(visitors_router, prefix=API_PREFIX)
    app.include_router(content_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
    app.include_router(events_router, prefix=API_PREFIX)
    app.include_router(system_router, prefix=API_PREFIX)

    return app


__all__ = ["configure_logging", "create_app"]
