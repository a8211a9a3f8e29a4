import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.core.cancellation import CancellationToken
from src.core.config import settings
from src.core.errors import ConfigurationError, ExtractionTimeout, ServiceError
from src.core.logging_config import configure_logging
from src.routers import agent_prompts, programs, scrape
from src.routers import settings as settings_router

logger = logging.getLogger(__name__)

SERVICE_NAME = "program-directory-scraper"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Configure logging and run the cycle timer for the app's lifetime."""
    configure_logging()
    token = CancellationToken()
    application.state.cancel_token = token

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        from src.scheduler.jobs import build_scheduler

        scheduler = build_scheduler(token)
        scheduler.start()
        logger.info("Scheduler started, tick every %ss", settings.SCHEDULER_TICK_SECONDS)
    try:
        yield
    finally:
        token.cancel()
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("Scheduler shut down")


app = FastAPI(title=SERVICE_NAME, version=VERSION, lifespan=lifespan)

app.include_router(scrape.router)
app.include_router(settings_router.router)
app.include_router(programs.router)
app.include_router(agent_prompts.router)

# ---------------------------------------------------------------------------
# Middleware: request-id injection
# ---------------------------------------------------------------------------


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error(request: Request, status_code: int, error: str, message: str, detail=None):
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": _request_id(request),
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(
        request, 422, "validation_error", "Request validation failed", jsonable_errors(exc)
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(
        request, 422, "validation_error", "Request validation failed", jsonable_errors(exc)
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error(request, exc.status_code, "http_error", str(exc.detail))


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return _error(request, 503, "configuration_error", str(exc))


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.warning("Extraction service error: %s", exc)
    return _error(
        request,
        502,
        "service_error",
        str(exc),
        {"status_code": exc.status_code} if exc.status_code else None,
    )


@app.exception_handler(ExtractionTimeout)
async def extraction_timeout_handler(request: Request, exc: ExtractionTimeout):
    logger.warning("Extraction timed out: %s", exc)
    return _error(request, 504, "extraction_timeout", str(exc), {"attempts": exc.attempts})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", extra={"request_id": _request_id(request)})
    return _error(
        request,
        500,
        "internal_error",
        "An unexpected error occurred",
        str(exc) if settings.DEBUG else None,
    )


def jsonable_errors(exc) -> list[dict]:
    """pydantic error list without the non-serializable ``ctx``/``input`` values."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


# ---------------------------------------------------------------------------
# Public endpoints (no auth)
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "healthy", "service": SERVICE_NAME, "version": VERSION}
