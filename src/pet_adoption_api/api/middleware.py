"""HTTP middleware: CORS, response hardening headers and the per-IP throttle."""

from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from pet_adoption_api.core.config import Settings
from pet_adoption_api.core.rate_limits import GENERAL, get_limiters
from pet_adoption_api.lib.guard.limiter import AttemptLimiter

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

_UNTHROTTLED_SUFFIXES = ("/health",)


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Best guess at the caller's address.

    Proxy headers are only read when listed in ``trusted_headers``; clients
    can send them too. The first non-empty trusted header wins, and for
    ``X-Forwarded-For`` that is its leftmost entry. Otherwise the socket peer
    is used, or ``"unknown"`` when there is none (e.g. some test transports).
    """
    for name in trusted_headers or ():
        value = request.headers.get(name, "").strip()
        if value:
            return value.split(",", 1)[0].strip() if name.lower() == "x-forwarded-for" else value
    return request.client.host if request.client else "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Install CORSMiddleware from the ``CORS_ORIGINS``/``CORS_ORIGIN_REGEX`` settings."""
    options: dict[str, Any] = {"allow_credentials": True, "allow_methods": ["*"], "allow_headers": ["*"]}
    if settings.cors_origin_list:
        options["allow_origins"] = settings.cors_origin_list
    regex = settings.cors_origin_regex.strip()
    if regex:
        options["allow_origin_regex"] = regex
    app.add_middleware(CORSMiddleware, **options)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp hardening headers on every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(_SECURITY_HEADERS)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP request throttle in front of every route.

    Counts requests in the ``general`` limiter. When no limiter is passed the
    process-wide registry's is looked up per request, so re-initializing the
    registry takes effect without rebuilding the app.
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: AttemptLimiter | None = None,
        trusted_proxy_headers: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self.trusted_proxy_headers = trusted_proxy_headers

    @property
    def limiter(self) -> AttemptLimiter:
        if self._limiter is not None:
            return self._limiter
        return get_limiters()[GENERAL]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path.endswith(_UNTHROTTLED_SUFFIXES):
            return await call_next(request)

        decision = self.limiter.hit(get_client_ip(request, self.trusted_proxy_headers))
        if decision.allowed:
            return await call_next(request)

        retry_after = decision.retry_after_seconds
        return JSONResponse(
            {"detail": "Rate limit exceeded", "code": "rate_limited", "retry_after_seconds": retry_after},
            status_code=429,
            headers={"Retry-After": str(retry_after)},
        )
