"""Reporting Gateway - Main entry point for report requests."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from reporting_gateway.clients import AuthClient, DataStoreClient
from reporting_gateway.config import Settings, settings
from reporting_gateway.errors import GatewayError
from reporting_gateway.logging_config import configure_logging
from reporting_gateway.middleware import (
    AuthMiddleware,
    CorrelationIdMiddleware,
    CorsMiddleware,
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SharedSecretMiddleware,
)
from reporting_gateway.routes import router
from reporting_gateway.services import (
    AuditLogger,
    ErrorService,
    IdentityVerifier,
    JWTService,
    RateLimitService,
    ReportService,
    RoleCache,
    RoleResolver,
    RpcDispatcher,
)

try:
    import uvicorn
except ImportError:  # pragma: no cover - uvicorn optional for ASGI deployments
    uvicorn = None

logger = logging.getLogger("reporting_gateway.main")

CACHE_SWEEP_INTERVAL_SECONDS = 60


def init_services(app: FastAPI, config: Settings, data_store, identity_verifier: IdentityVerifier):
    """Wire the gateway services onto ``app.state``."""
    role_cache = RoleCache(ttl_seconds=config.ROLE_CACHE_TTL_SECONDS)
    rate_limit_service = RateLimitService(
        burst=config.RATE_LIMIT_BURST,
        refill_interval_ms=config.RATE_REFILL_INTERVAL_MS,
        refill_amount=config.RATE_REFILL_AMOUNT,
    )
    audit_logger = AuditLogger(data_store, max_queue_size=config.AUDIT_QUEUE_SIZE)
    dispatcher = RpcDispatcher(data_store, timeout_ms=config.MAX_RPC_TIMEOUT_MS)

    app.state.settings = config
    app.state.data_store = data_store
    app.state.identity_verifier = identity_verifier
    app.state.role_cache = role_cache
    app.state.role_resolver = RoleResolver(data_store, role_cache)
    app.state.rate_limit_service = rate_limit_service
    app.state.audit_logger = audit_logger
    app.state.report_service = ReportService(dispatcher, audit_logger)


def build_clients(config: Settings):
    """HTTP clients for the data and identity services.

    ``AUTH_TIMEOUT_SECONDS`` bounds both the credential check and the role
    lookup; RPCs keep the longer transport timeout and their own deadline.
    """
    data_store = DataStoreClient(
        config.SUPABASE_URL,
        config.SUPABASE_SERVICE_ROLE_KEY,
        timeout=max(30.0, config.MAX_RPC_TIMEOUT_MS / 1000.0),
        lookup_timeout=config.AUTH_TIMEOUT_SECONDS,
    )
    auth_client = AuthClient(
        config.SUPABASE_URL,
        config.SUPABASE_SERVICE_ROLE_KEY,
        timeout=config.AUTH_TIMEOUT_SECONDS,
    )
    return data_store, auth_client


async def _sweep_caches(app: FastAPI):
    """Background loop evicting expired role verdicts and idle buckets."""
    while True:
        try:
            await asyncio.sleep(CACHE_SWEEP_INTERVAL_SECONDS)
            app.state.role_cache.cleanup_expired()
            await app.state.rate_limit_service.cleanup_idle()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Error in cache sweep loop: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info(f"Starting {settings.SERVICE_NAME} v{settings.SERVICE_VERSION}")
    logger.info(
        "Environment: %s | Server: %s:%s",
        settings.ENVIRONMENT,
        settings.HOST,
        settings.PORT,
    )

    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY - aborting startup")
        raise RuntimeError("Missing required environment variables: SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")

    data_store, auth_client = build_clients(settings)
    jwt_service = None
    if settings.SUPABASE_JWT_SECRET:
        jwt_service = JWTService(
            settings.SUPABASE_JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            audience=settings.JWT_AUDIENCE,
        )
        logger.info("Verifying credentials locally with the configured JWT secret")

    init_services(app, settings, data_store, IdentityVerifier(auth_client, jwt_service))
    await app.state.audit_logger.start()
    sweeper = asyncio.create_task(_sweep_caches(app))

    logger.info(f"{settings.SERVICE_NAME} startup complete")

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME}")
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    await app.state.audit_logger.stop()
    await data_store.close()
    await auth_client.close()
    logger.info(f"{settings.SERVICE_NAME} shutdown complete")


app = FastAPI(
    title=settings.OPENAPI_TITLE,
    version=settings.SERVICE_VERSION,
    description=settings.OPENAPI_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add custom middleware (last added is executed first)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(AuthMiddleware)
app.add_middleware(SharedSecretMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
# Unexpected errors still pass through CORS on the way out
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(CorsMiddleware)

app.include_router(router)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return ErrorService.from_exception(exc, getattr(request.state, "correlation_id", None))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # unmatched method/path combinations are all reported as not_found
    status_code = 404 if exc.status_code in (404, 405) else exc.status_code
    return ErrorService.json_response(
        status_code=status_code,
        code=ErrorService.map_http_status_to_error_code(exc.status_code),
        correlation_id=getattr(request.state, "correlation_id", None),
    )


if __name__ == "__main__" and uvicorn:
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT.lower() == "development",
    )
