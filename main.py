"""Rabbitask companion API — FastAPI application entry-point.

Hosts the client-state core (session, user context, oversee mode, task cache,
view and modal state) for a local UI: REST routes under ``/api`` and a
WebSocket feed of state changes on ``/ws/state``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rabbitask.app_state import AppContainer
from rabbitask.config import settings
from rabbitask.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    FormValidationError,
    NotFoundError,
    RabbitaskError,
    TransportError,
)
from rabbitask.routers import oversee_router, session_router, state_router, task_router, view_router
from rabbitask.schemas.api import HealthResponse
from rabbitask.ws_manager import ConnectionManager, StateBroadcaster

VERSION = "1.0.0"

# ── Logging ─────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("rabbitask")


def build_container() -> AppContainer:
    return AppContainer(settings)


def _error_response(
    request: Request,
    status_code: int,
    exc: Exception,
    errors: Optional[Dict[str, str]] = None,
    upstream_status: Optional[int] = None,
) -> JSONResponse:
    content = {
        "detail": str(exc),
        "error": type(exc).__name__,
        "errors": errors or {},
        "status_code": upstream_status,
        "path": str(request.url.path),
        "method": request.method,
    }
    return JSONResponse(status_code=status_code, content=content)


def create_app(container_factory: Callable[[], AppContainer] = build_container) -> FastAPI:

    # ── Lifespan ────────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Rabbitask companion starting — api=%s  state_db=%s",
            settings.API_URL,
            settings.STATE_DB_URL,
        )
        container = container_factory()
        manager = ConnectionManager()
        broadcaster = StateBroadcaster(container, manager)
        app.state.container = container
        app.state.ws_manager = manager
        app.state.broadcaster = broadcaster

        broadcaster.start()
        await container.startup()
        try:
            yield
        finally:
            await broadcaster.stop()
            await container.aclose()
            logger.info("Rabbitask companion shutting down")

    app = FastAPI(
        title="Rabbitask companion API",
        description=(
            "Client-state core of the Rabbitask task manager: session, oversee mode, "
            "task cache and categorization, exposed over REST and WebSocket."
        ),
        version=VERSION,
        lifespan=lifespan,
    )

    # ── Exception handlers ──────────────────────────────────────────────────────

    @app.exception_handler(FormValidationError)
    async def _form_validation_error(request: Request, exc: FormValidationError):
        return _error_response(request, 400, exc, errors=exc.errors)

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError):
        return _error_response(request, 401, exc)

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return _error_response(request, 404, exc, upstream_status=exc.status_code)

    @app.exception_handler(ConflictError)
    async def _conflict(request: Request, exc: ConflictError):
        return _error_response(request, 409, exc, upstream_status=exc.status_code)

    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        logger.warning("Rabbitask API error on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(request, 502, exc, upstream_status=exc.status_code)

    @app.exception_handler(TransportError)
    async def _transport_error(request: Request, exc: TransportError):
        logger.warning("Rabbitask API unreachable on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(request, 502, exc)

    @app.exception_handler(RabbitaskError)
    async def _rabbitask_error(request: Request, exc: RabbitaskError):
        return _error_response(request, 400, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(request, 500, exc)

    # ── Health ──────────────────────────────────────────────────────────────────

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health(request: Request):
        container: AppContainer = request.app.state.container
        return HealthResponse(
            status="ok",
            authenticated=container.session.is_authenticated(),
            api_url=container.settings.API_URL,
            version=VERSION,
        )

    # ── Routers ─────────────────────────────────────────────────────────────────

    app.include_router(session_router.router, prefix="/api/session")
    app.include_router(task_router.router, prefix="/api/tasks")
    app.include_router(oversee_router.router, prefix="/api/oversee")
    app.include_router(view_router.router, prefix="/api/view")
    app.include_router(state_router.router)

    return app


app = create_app()


# ── Entry-point ─────────────────────────────────────────────────────────────────

def main():
    uvicorn.run(
        "main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
