"""
tenantvault HTTP API — FastAPI application factory.

Routes live under ``/api``; ``/health`` is unauthenticated. Service errors
are mapped to status codes by their ``kind``; storage failures are logged
with the correlation id and returned as an opaque 503.

Run:
    tenantvault serve
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenantvault import __version__
from tenantvault.api.middleware import CorrelationMiddleware
from tenantvault.api.routers import auth, credentials, tenants, users, vaults
from tenantvault.config import Config, get_config
from tenantvault.errors import TenantVaultError
from tenantvault.services import Services, build_services

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[str, int] = {
    "not_found": 404,
    "access_denied": 403,
    "personal_vault_no_members": 400,
    "invalid_role": 400,
    "invalid_status": 400,
    "invalid_account_type": 400,
    "invalid_input": 400,
    "conflict": 409,
    "self_modification_denied": 403,
    "unauthenticated": 401,
    "system_error": 503,
}


async def handle_service_error(request: Request, exc: TenantVaultError) -> JSONResponse:
    status = ERROR_STATUS.get(exc.kind, 500)
    correlation_id = getattr(request.state, "correlation_id", None)
    if exc.retryable:
        logger.error(
            "%s %s failed [%s]: %r", request.method, request.url.path, correlation_id, exc.__cause__
        )
        return JSONResponse(
            {"error": "service temporarily unavailable", "kind": exc.kind, "retryable": True},
            status_code=status,
        )
    return JSONResponse({"error": exc.message, "kind": exc.kind}, status_code=status)


def _default_services(cfg: Config) -> Services:
    from tenantvault.db import Database
    from tenantvault.store.postgres import PostgresStore

    return build_services(PostgresStore(Database(cfg.db)), cfg)


def create_app(services: Services | None = None, config: Config | None = None) -> FastAPI:
    """Build the API around a services container (PostgreSQL-backed by default)."""
    cfg = config or get_config()
    services = services or _default_services(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("tenantvault API %s starting", __version__)
        yield
        close = getattr(services.store, "close", None)
        if close is not None:
            close()

    app = FastAPI(title="tenantvault", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.api.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationMiddleware)
    app.add_exception_handler(TenantVaultError, handle_service_error)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    for module in (auth, tenants, vaults, credentials, users):
        app.include_router(module.router, prefix="/api")

    return app
