"""FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tablekit.api.routes import create_tables_router
from tablekit.auth.jwt_service import JWTService
from tablekit.auth.middleware import AuthMiddleware, get_request_caller
from tablekit.auth.types import Caller
from tablekit.bootstrap import build_service
from tablekit.engine.service import TableService
from tablekit.errors import TableError
from tablekit.hooks.registry import HookRegistry
from tablekit.settings import Settings

logger = logging.getLogger(__name__)

# Used for every request when auth is disabled
DEV_CALLER = Caller(id="dev-user", roles=("admin",))

ERROR_STATUS = {
    "NotFound": 404,
    "Forbidden": 403,
    "Validation": 422,
    "HookFailed": 500,
}


def error_response(exc: TableError) -> JSONResponse:
    """Map an engine error to the JSON error envelope."""
    error = exc.to_dict()
    error.setdefault("details", None)
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 500),
        content={"success": False, "error": error},
    )


def create_app(
    settings: Settings | None = None,
    service: TableService | None = None,
    hooks: HookRegistry | None = None,
) -> FastAPI:
    """Create the API app.

    Args:
        settings: Runtime settings (default: read from the environment)
        service: A ready table service; built from settings on startup if None
        hooks: Named hooks that table YAML files may reference
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize on startup, cleanup on shutdown."""
        factory = None
        if app.state.table_service is None:
            app.state.table_service, factory = build_service(settings, hooks)
        yield
        if factory:
            factory.close()

    app = FastAPI(title="Tablekit API", lifespan=lifespan)
    app.state.table_service = service

    # CORS for frontend dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.disable_auth:
        logger.warning("Authentication disabled; requests run as %s", DEV_CALLER.id)
    else:
        app.add_middleware(AuthMiddleware, jwt_service=JWTService(settings.secret_key))

    def get_caller(request: Request) -> Caller:
        """Dependency resolving the request's caller; 401 if unauthenticated."""
        if settings.disable_auth:
            return DEV_CALLER
        caller = get_request_caller(request)
        if caller is None:
            raise HTTPException(
                status_code=401,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return caller

    @app.exception_handler(TableError)
    async def table_error_handler(request: Request, exc: TableError) -> JSONResponse:
        if exc.kind == "HookFailed":
            logger.error("%s %s: %s", request.method, request.url.path, exc.message)
        return error_response(exc)

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(
        create_tables_router(
            get_service=lambda: app.state.table_service,
            get_caller=get_caller,
        )
    )
    return app


app = create_app()
