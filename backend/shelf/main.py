"""FastAPI main application."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shelf.api.v1 import auth, household, invites, products
from shelf.config import settings
from shelf.core.database import close_db, init_db
from shelf.core.exceptions import ShelfError
from shelf.core.logging_config import get_logger, setup_logging
from shelf.middleware.error_handler import ErrorHandlerMiddleware
from shelf.middleware.request_logging import RequestLoggingMiddleware

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger = get_logger(__name__)

    if not settings.APP_BASE_URL:
        logger.warning("app_base_url_missing", detail="invite and verification emails will fail")
    if not settings.EMAIL_DRY_RUN and not (settings.SMTP_HOST and settings.SMTP_FROM_EMAIL):
        logger.warning("smtp_not_configured", detail="set SMTP_* or EMAIL_DRY_RUN=true")

    await init_db()
    logger.info("startup_complete", app=settings.APP_NAME, environment=settings.ENVIRONMENT)

    yield

    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(RequestLoggingMiddleware)


def _make_json_serializable(obj):
    """Recursively convert non-JSON-serializable types to serializable ones."""
    if isinstance(obj, dict):
        return {k: _make_json_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_make_json_serializable(i) for i in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Exception):
        return str(obj)
    return obj


@app.exception_handler(ShelfError)
async def shelf_error_handler(request: Request, exc: ShelfError):
    _logger.info(
        "%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.code
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    _logger.debug("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=422,
        content={"detail": _make_json_serializable(exc.errors()), "code": "validation_error"},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(invites.router, prefix="/api/v1/invites", tags=["Invites"])
app.include_router(household.router, prefix="/api/v1/household", tags=["Household"])
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
