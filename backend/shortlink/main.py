"""Main FastAPI application"""

from datetime import timedelta, datetime, timezone
from pathlib import Path
from typing import Optional
import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from shortlink.api.errors import error_response
from shortlink.api.v1 import auth, links, redirect
from shortlink.config import Settings, get_settings
from shortlink.core.database import build_engine, build_session_factory, init_db
from shortlink.core.exceptions import BaseAPIException, TransientStoreError
from shortlink.core.security import TokenCodec
from shortlink.schemas.response import HealthResponse
from shortlink.services.auth_service import AuthService
from shortlink.services.cookies import CookieService
from shortlink.services.geolocation import GeoService
from shortlink.services.link_service import LinkService
from shortlink.services.session_store import SessionStore
from shortlink.services.token_service import TokenService
from shortlink.services.user_service import UserService

logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "shortlink_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "shortlink_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def configure_logging(settings: Settings) -> None:
    """Log to stderr and to the configured log file"""
    log_file = settings.get_log_file()
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def build_token_service(settings: Settings) -> TokenService:
    codec = TokenCodec(
        settings.ACCESS_TOKEN_SECRET,
        settings.REFRESH_TOKEN_SECRET,
        algorithm=settings.ALGORITHM,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        leeway_seconds=settings.TOKEN_CLOCK_SKEW_SECONDS,
    )
    return TokenService(codec, SessionStore())


def _route_path(request: Request) -> str:
    # Label metrics by route template so short codes do not explode cardinality
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    """
    Build the application and its services

    Settings are loaded once here; missing token secrets raise
    ConfigurationError before anything is served.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    if session_factory is None:
        engine = build_engine(
            settings.get_database_url(),
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            echo=settings.DEBUG,
        )
        session_factory = build_session_factory(engine)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None
    )

    token_service = build_token_service(settings)
    user_service = UserService(bcrypt_rounds=settings.BCRYPT_ROUNDS)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.token_service = token_service
    app.state.auth_service = AuthService(token_service, user_service)
    app.state.cookie_service = CookieService(settings)
    app.state.link_service = LinkService(
        short_url_length=settings.SHORT_URL_LENGTH,
        default_expire_days=settings.LINK_DEFAULT_EXPIRE_DAYS,
    )
    app.state.geo_service = GeoService(settings.GEOIP_DATABASE_PATH or None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers + request timing middleware
    @app.middleware("http")
    async def add_headers_and_timing(request: Request, call_next):
        """Add security headers and log slow requests"""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Request-ID"] = request_id

        path = _route_path(request)
        REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)

        if duration > 1.0:
            logger.warning(
                "Slow request: %s %s took %.2fs request_id=%s",
                request.method,
                request.url.path,
                duration,
                request_id,
            )

        return response

    # Exception handlers
    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        """Handle custom API exceptions"""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "API exception %s on %s %s: %s",
            exc.status_code,
            request.method,
            request.url.path,
            exc.message,
        )
        return error_response(request, exc.status_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors"""
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            })

        logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)
        return error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation failed",
            errors,
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """Handle database errors"""
        if isinstance(exc, OperationalError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
            logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc)
            transient = TransientStoreError()
            return error_response(request, transient.status_code, transient.message)

        logger.exception("Database error on %s %s", request.method, request.url.path)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "A database error occurred. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions"""
        logger.critical(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred.",
        )

    @app.on_event("startup")
    async def startup_event():
        """Check the database before serving"""
        logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)
        logger.info("Environment: %s", settings.ENVIRONMENT)
        init_db(session_factory.kw["bind"], settings.DB_INIT_MODE, settings.DB_REQUIRE_HEAD)
        logger.info("Database initialized successfully")

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.geo_service.close()
        logger.info("Shutting down %s", settings.APP_NAME)

    @app.get("/health", response_model=HealthResponse)
    def health_check():
        """Health check endpoint"""
        db_ok = True
        db_error = None
        db = session_factory()
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            db_ok = False
            db_error = str(exc)
        finally:
            db.close()

        return HealthResponse(
            status="healthy" if db_ok else "degraded",
            version=settings.APP_VERSION,
            timestamp=datetime.now(timezone.utc).isoformat(),
            database={"ok": db_ok, "error": db_error},
        )

    @app.get("/metrics")
    def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(links.router, prefix="/api/v1/links", tags=["Links"])
    # Catch-all short code route goes last
    app.include_router(redirect.router, tags=["Redirect"])

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "shortlink.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS
    )


if __name__ == "__main__":
    main()
