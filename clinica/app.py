"""FastAPI application exposing the clinical records API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import hash_password, require_token
from .database import Database, seed_default_admin_user
from .errors import ClinicaError, ValidationError
from .repositories import build_repositories
from .routes import api_routers, auth_router
from .settings import Settings, get_settings
from .validators import describe_error

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(api: FastAPI) -> AsyncIterator[None]:
    settings: Settings = api.state.settings
    db: Database = api.state.database
    db.init_schema()
    seed_default_admin_user(
        db,
        hash_password(settings.default_admin_password, settings.bcrypt_rounds),
        settings.default_admin_username,
    )
    yield


def _register_exception_handlers(api: FastAPI, settings: Settings) -> None:
    @api.exception_handler(ClinicaError)
    async def clinica_error_handler(request: Request, exc: ClinicaError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detalles or exc.mensaje)
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(settings.expose_error_details)
        )

    @api.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError([describe_error(item) for item in exc.errors()])
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Return a configured FastAPI app (useful for testing)."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    api = FastAPI(title="Clinica API", version="1.0.0", lifespan=lifespan)
    api.state.settings = settings
    api.state.database = Database(settings.database_path, settings.db_pool_size, settings.db_timeout)
    api.state.repositories = build_repositories(
        api.state.database, password_rounds=settings.bcrypt_rounds
    )

    api.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    _register_exception_handlers(api, settings)

    api.include_router(auth_router)
    token_dependency = [Depends(require_token)]
    for protected_router in api_routers:
        api.include_router(protected_router, prefix="/api", dependencies=token_dependency)

    @api.get("/", include_in_schema=False)
    def root() -> dict:
        return {"mensaje": "API de historias clínicas en funcionamiento"}

    return api


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("clinica.app:app", host=settings.host, port=settings.port)
