"""Middleware for the reporting gateway."""

import hmac
import logging
import math
import time
import uuid
from typing import Callable, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from reporting_gateway.config import Settings, settings as default_settings
from reporting_gateway.errors import Forbidden, RateLimited, Unauthenticated
from reporting_gateway.models.response import ErrorCode
from reporting_gateway.services.error_service import ErrorService
from reporting_gateway.services.identity_service import parse_bearer_token

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = "GET, POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization, x-reporting-secret, apikey, x-client-info"
CORS_MAX_AGE = "600"

# Paths served without a caller identity
EXCLUDED_PATHS = frozenset({"/docs", "/docs/oauth2-redirect", "/redoc", "/openapi.json"})


def get_request_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or default_settings


def get_app_service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise RuntimeError(f"{name} is not initialized")
    return service


def cors_headers(origin: Optional[str], allowed_origins) -> Dict[str, str]:
    """CORS headers for a response; unknown origins get ``null``."""
    allowed = origin if origin and origin in allowed_origins else None
    return {
        "Access-Control-Allow-Origin": allowed or "null",
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": CORS_MAX_AGE,
        "Vary": "Origin",
    }


def _is_excluded(path: str) -> bool:
    return path in EXCLUDED_PATHS


class CorsMiddleware(BaseHTTPMiddleware):
    """Applies CORS headers to every response and answers preflights."""

    async def dispatch(self, request: Request, call_next: Callable):
        origin = request.headers.get("origin")
        headers = cors_headers(origin, get_request_settings(request).allowed_origins)

        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to generate and propagate correlation IDs."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Add correlation ID to request."""
        correlation_id = request.headers.get("X-Correlation-Id", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
            response = await call_next(request)

        response.headers["X-Correlation-Id"] = correlation_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Log request and response."""
        start_time = time.time()
        correlation_id = getattr(request.state, "correlation_id", "unknown")

        logger.info(
            f"Request started: method={request.method} path={request.url.path} "
            f"correlation_id={correlation_id}"
        )

        response = await call_next(request)

        latency_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Request completed: method={request.method} path={request.url.path} "
            f"status={response.status_code} latency={latency_ms:.2f}ms "
            f"correlation_id={correlation_id}"
        )

        return response


class SharedSecretMiddleware(BaseHTTPMiddleware):
    """Gates every request on ``x-reporting-secret`` when a secret is configured."""

    async def dispatch(self, request: Request, call_next: Callable):
        config = get_request_settings(request)
        if config.secret_enabled:
            provided = request.headers.get("x-reporting-secret") or ""
            if not hmac.compare_digest(provided.encode(), config.REPORTING_API_SECRET.encode()):
                logger.warning(f"Shared secret mismatch for path={request.url.path}")
                return ErrorService.from_exception(
                    Forbidden(), getattr(request.state, "correlation_id", None)
                )

        return await call_next(request)


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticates the bearer credential and requires the admin role."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Validate credential and resolve the caller identity."""
        if _is_excluded(request.url.path):
            return await call_next(request)

        identity_verifier = get_app_service(request, "identity_verifier")
        role_resolver = get_app_service(request, "role_resolver")
        correlation_id = getattr(request.state, "correlation_id", None)

        token = parse_bearer_token(request.headers.get("Authorization"))
        if not token:
            return ErrorService.from_exception(
                Unauthenticated(ErrorCode.MISSING_TOKEN), correlation_id
            )

        verified = await identity_verifier.verify(token)
        if verified is None:
            logger.warning(f"Credential rejected for path={request.url.path}")
            return ErrorService.from_exception(
                Unauthenticated(ErrorCode.INVALID_TOKEN), correlation_id
            )

        caller = await role_resolver.resolve(verified.user_id, verified.role_claim)
        request.state.user_id = caller.user_id
        request.state.caller = caller

        if not caller.is_admin:
            logger.warning(f"Non-admin caller rejected: user_id={caller.user_id}")
            return ErrorService.from_exception(Forbidden("admin role required"), correlation_id)

        logger.debug(f"Authenticated admin user: {caller.user_id}")
        return await call_next(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware for per-user rate limiting."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Apply rate limiting."""
        caller = getattr(request.state, "caller", None)
        if caller is None:
            return await call_next(request)

        rate_limit_service = get_app_service(request, "rate_limit_service")
        decision = await rate_limit_service.check_user_rate_limit(caller.user_id)

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded: user_id={caller.user_id}")
            retry_after = max(1, math.ceil(decision.retry_after_ms / 1000))
            return ErrorService.from_exception(
                RateLimited(),
                getattr(request.state, "correlation_id", None),
                headers={"X-Rate-Limit-Remaining": "0", "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-Rate-Limit-Remaining"] = str(decision.remaining)
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware for global error handling."""

    async def dispatch(self, request: Request, call_next: Callable):
        """Turn unexpected exceptions into a 500 ``internal_error``."""
        try:
            return await call_next(request)
        except Exception as e:
            correlation_id = getattr(request.state, "correlation_id", None)

            ErrorService.log_error(
                error_code=ErrorCode.INTERNAL_ERROR,
                message=str(e),
                correlation_id=correlation_id,
                user_id=getattr(request.state, "user_id", None),
                path=request.url.path,
            )
            logger.exception(f"Unhandled exception: {e}")

            return ErrorService.json_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                code=ErrorCode.INTERNAL_ERROR,
                correlation_id=correlation_id,
            )
