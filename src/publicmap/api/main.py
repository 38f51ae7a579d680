"""
FastAPI Main Application

Public map REST API: snapshot reads, geocoding, reporting, assignments and
snapshot refresh.
"""
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from src.publicmap import __version__
from src.publicmap.api.dependencies import get_session_factory
from src.publicmap.api.schemas import HealthCheck
from src.publicmap.api.routers import (
    admin,
    assignments,
    audit,
    geocode,
    map_points,
    points,
    reports,
    residents,
)
from src.publicmap.db.session import close_connections, health_check as database_health_check
from src.publicmap.errors import PublicMapError
from src.publicmap.utils.logger import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api_starting", version=__version__, environment=settings.environment)
    yield
    close_connections()


# Create FastAPI app
app = FastAPI(
    title="Public Map API",
    description="Privacy-reduced public view of field-collected points, with reporting and exports",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Actor-User-Id", "X-Request-Id"],
    expose_headers=["X-Request-Id"],
    max_age=86400,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one line per request with its status and duration."""
    request_id = bind_request_context(
        method=request.method,
        path=request.url.path,
        request_id=request.headers.get("X-Request-Id"),
    )
    started = time.perf_counter()
    try:
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
    finally:
        clear_request_context()

# Include routers
app.include_router(map_points.router)
app.include_router(geocode.router)
app.include_router(reports.router)
app.include_router(assignments.router)
app.include_router(admin.router)
app.include_router(points.router)
app.include_router(residents.router)
app.include_router(audit.router)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


@app.exception_handler(PublicMapError)
async def handle_public_map_error(request: Request, exc: PublicMapError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(400, "VALIDATION_ERROR", message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "NOT_FOUND", "Not found")
    if exc.status_code >= 500:
        return error_response(exc.status_code, "INTERNAL", str(exc.detail))
    return error_response(exc.status_code, "VALIDATION_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return error_response(500, "INTERNAL", "Internal server error")


@app.get("/health", response_model=HealthCheck, tags=["health"])
def health_check(factory: sessionmaker = Depends(get_session_factory)):
    """
    Health check endpoint.

    Returns:
        Health status with database connectivity check
    """
    database_ok = database_health_check(factory)
    return HealthCheck(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        database="connected" if database_ok else "error",
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/", tags=["root"])
def root():
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "ok": True,
        "name": "publicmap-api",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.publicmap.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
