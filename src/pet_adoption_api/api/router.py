"""Mounts the v1 routers under ``API_V1_PREFIX`` and installs the middleware stack."""

from fastapi import APIRouter, FastAPI

from pet_adoption_api.api.middleware import RateLimitMiddleware, SecurityHeadersMiddleware, setup_cors
from pet_adoption_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    from pet_adoption_api.api.v1.adoptions import adoptions_router
    from pet_adoption_api.api.v1.auth import router as auth_router
    from pet_adoption_api.api.v1.users import users_router

    api = APIRouter(prefix=settings.api_v1_prefix)
    for router in (auth_router, users_router, adoptions_router):
        api.include_router(router)
    return api


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install middleware; the last added runs first, so the throttle sees requests before CORS."""
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware, trusted_proxy_headers=settings.trusted_proxy_header_list)
