import logging
import os
import time
import uuid
from typing import Optional

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import auth, users
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import APIError
from app.core.keys import SigningKey
from app.core.logging_config import configure_logging
from app.core.rate_limiter import limiter
from app.core.redis_client import create_redis_client
from app.core.security import Clock, TokenIssuer, TokenVerifier
from app.middleware.session_guard import SessionGuardMiddleware
from app.services.auth_service import AuthService
from app.services.revocation_store import RevocationStore
from app.services.session_guard import SessionGuard
from app.utils.response import error

API_VERSION = "1.0.0"


def _init_sentry(settings: Settings) -> None:
    if settings.ENVIRONMENT != "production" or not settings.SENTRY_DSN:
        return
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1,
            integrations=[FastApiIntegration()],
        )
        logging.info("Sentry initialized successfully")
    except Exception as e:
        # Application continues without Sentry monitoring
        logging.warning(f"Failed to initialize Sentry: {e}")


def create_app(
    settings: Optional[Settings] = None,
    *,
    redis_client=None,
    clock: Clock = time.time,
) -> FastAPI:
    """Build the application and its token components.

    Raises SigningKeyError when the signing secret is unusable, so a
    misconfigured process never starts serving.
    """
    settings = settings or default_settings

    # --------------------------------------------------
    # CONFIGURE LOGGING (FIRST)
    # --------------------------------------------------
    configure_logging(settings)
    _init_sentry(settings)

    # --------------------------------------------------
    # TOKEN COMPONENTS
    # --------------------------------------------------
    signing_key = SigningKey.from_secret(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    issuer = TokenIssuer(signing_key, ttl_ms=settings.JWT_EXPIRATION_MS, clock=clock)
    verifier = TokenVerifier(signing_key, clock=clock)

    owns_redis_client = redis_client is None
    if owns_redis_client:
        redis_client = create_redis_client(settings)
    revocation_store = RevocationStore(
        redis_client,
        key_prefix=settings.REVOCATION_KEY_PREFIX,
        timeout=settings.REVOCATION_STORE_TIMEOUT,
    )
    guard = SessionGuard(verifier, revocation_store, fail_open=settings.REVOCATION_FAIL_OPEN)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
    )
    app.state.settings = settings
    app.state.token_issuer = issuer
    app.state.token_verifier = verifier
    app.state.revocation_store = revocation_store
    app.state.session_guard = guard
    app.state.auth_service = AuthService(issuer, verifier, revocation_store, clock=clock)

    @app.on_event("shutdown")
    async def close_revocation_store():
        # Injected clients belong to the caller.
        if owns_redis_client:
            await redis_client.aclose()

    # --------------------------------------------------
    # SESSION GUARD
    # --------------------------------------------------
    app.add_middleware(
        SessionGuardMiddleware,
        guard=guard,
        include_paths=settings.protected_paths,
        exclude_paths=settings.public_paths,
    )

    # --------------------------------------------------
    # RATE LIMITING SETUP
    # --------------------------------------------------
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return error(
            status_code=429,
            message="Too many requests. Please try again later.",
        )

    # --------------------------------------------------
    # CORS MIDDLEWARE
    # --------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.BACKEND_CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "X-Requested-With",
        ],
        expose_headers=["X-Process-Time"],
        max_age=3600,
    )

    # --------------------------------------------------
    # SECURITY HEADERS MIDDLEWARE
    # --------------------------------------------------
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # --------------------------------------------------
    # REQUEST TIMING MIDDLEWARE
    # --------------------------------------------------
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")

        response.headers["X-Correlation-ID"] = correlation_id
        return response

    # --------------------------------------------------
    # REQUEST LOGGING MIDDLEWARE
    # --------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger = structlog.get_logger()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        response = await call_next(request)

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )

        return response

    # --------------------------------------------------
    # INCLUDE ROUTERS
    # --------------------------------------------------
    app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["Authentication"])
    app.include_router(users.router, prefix=f"{settings.API_V1_STR}/users", tags=["Users"])

    # --------------------------------------------------
    # HEALTH CHECK ENDPOINTS
    # --------------------------------------------------
    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": API_VERSION,
        }

    @app.get("/health/redis")
    async def redis_health_check():
        if await revocation_store.ping():
            return {"status": "healthy"}
        return {"status": "unhealthy", "reason": "Revocation store unreachable"}

    @app.get(f"{settings.API_V1_STR}/version")
    def get_version():
        return {
            "version": API_VERSION,
            "commit": os.getenv("GIT_COMMIT", "unknown"),
        }

    # --------------------------------------------------
    # EXCEPTION HANDLERS
    # --------------------------------------------------
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return error(
            status_code=exc.status_code,
            message=exc.message,
            data=exc.errors or None,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        message = detail if isinstance(detail, str) else "Request failed"
        return error(
            status_code=exc.status_code,
            message=message,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        field_errors = {
            ".".join(str(part) for part in err["loc"] if part != "body"): err["msg"]
            for err in exc.errors()
        }
        return error(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Validation failed",
            data=field_errors,
        )

    # --------------------------------------------------
    # GLOBAL EXCEPTION HANDLER
    # --------------------------------------------------
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        # Unexpected exceptions: log and return controlled response
        logger = structlog.get_logger()
        logger.exception("unhandled_exception", error_type=type(exc).__name__, detail=str(exc))

        if settings.DEBUG and settings.ENVIRONMENT != "production":
            return error(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                message=f"Internal server error: {str(exc)}",
            )

        return error(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Internal server error",
        )

    return app


app = create_app()
