import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediareaper.config import ConfigurationError, configure_logging, require_api_token, settings
from mediareaper.database import async_session, engine, init_db
from mediareaper.errors import RegistryError
from mediareaper.routers import api_router, connections_router
from mediareaper.scheduler import HealthCheckScheduler
from mediareaper.version import __version__
from mediareaper.services.crypto import load_codec
from mediareaper.services.registry import ConnectionRegistry, build_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.log_level)
    codec = load_codec()
    app.state.api_token = require_api_token()
    await init_db()
    app.state.registry = build_registry(async_session, codec, settings.probe_timeout)
    app.state.health_scheduler = HealthCheckScheduler(app.state.registry.prober, settings.health_check_interval)
    app.state.health_scheduler.start()
    logger.info("Media Reaper API ready")
    yield
    # Shutdown
    app.state.health_scheduler.stop()
    await engine.dispose()


async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Only location and message; the offending input may be an API key
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "; ".join(problems) or "invalid request body"
    return JSONResponse({"error": message}, status_code=400)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None)
    )


def create_app(
    registry: Optional[ConnectionRegistry] = None,
    api_token: Optional[str] = None,
) -> FastAPI:
    """Build the API.

    With no arguments the app boots from settings in its lifespan hook. Passing
    a registry and token skips that (no database init, no scheduler).
    """
    if registry is None:
        application = FastAPI(title="Media Reaper", version=__version__, lifespan=lifespan)
    else:
        if not api_token:
            raise ConfigurationError("an api_token is required when passing a registry")
        application = FastAPI(title="Media Reaper", version=__version__)
        application.state.registry = registry
        application.state.api_token = api_token

    application.add_exception_handler(RegistryError, registry_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)

    # Include routers
    application.include_router(api_router, prefix="/api", tags=["api"])
    application.include_router(connections_router, prefix="/api/connections", tags=["connections"])
    return application


app = create_app()
