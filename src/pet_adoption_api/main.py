"""ASGI entry point: ``create_app`` builds the application, ``lifespan`` owns its resources."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from pet_adoption_api import __version__
from pet_adoption_api.core.config import get_settings
from pet_adoption_api.core.database import dispose_engine, init_engine
from pet_adoption_api.core.errors import AppError
from pet_adoption_api.core.logging import setup_logging
from pet_adoption_api.core.rate_limits import init_limiters


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Set up logging, the database engine and the limiters; release the engine on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)
    init_engine(settings.database_url, echo=False)
    init_limiters(settings)
    logger.info("Pet Adoption API {} up ({})", __version__, settings.environment)
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("Pet Adoption API stopped")


def app_error_response(exc: AppError) -> JSONResponse:
    """Render an ``AppError`` as ``{"detail", "code", **detail}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **exc.detail},
        headers=exc.headers,
    )


async def _on_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    return app_error_response(exc)


async def _on_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Build the application with its error handlers, middleware and ``/api/v1`` routes."""
    from pet_adoption_api.api.router import create_router, setup_middleware

    settings = get_settings()
    app = FastAPI(
        title="Pet Adoption API",
        description="Pet adoption requests with a reviewed lifecycle, behind JWT authentication",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(AppError, _on_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(ValueError, _on_value_error)  # type: ignore[arg-type]

    setup_middleware(app, settings)
    app.include_router(create_router(settings))
    return app
