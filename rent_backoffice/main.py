"""FastAPI Application Entry Point"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from rent_backoffice.config import settings
from rent_backoffice.database import init_db, close_db
from rent_backoffice.core.exceptions import (
    RentBackOfficeError,
    InvalidRentTermsError,
    IncompleteBindingError,
    NotFoundError,
    CollaboratorError,
    BindingConsistencyError,
    DuplicateObligationError,
)
from rent_backoffice.core.logging import setup_logging, get_logger
from rent_backoffice.core.middleware import RequestIDMiddleware, RequestTimingMiddleware
from rent_backoffice.schemas.responses import ErrorResponse, ErrorDetail
from rent_backoffice.api.v1.router import api_router

# Setup logging
setup_logging()
logger = get_logger(__name__)


# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED and not settings.is_test,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting application", extra={"environment": settings.ENVIRONMENT})

    # Initialize database (for development only - use Alembic in production)
    if settings.is_development:
        await init_db()
        logger.info("Database initialized")

    yield

    logger.info("Shutting down application")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Rent billing, late-status tracking and tenant-unit bindings",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=[settings.ALLOWED_HEADERS],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)

# Custom middleware
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


ERROR_STATUS = {
    InvalidRentTermsError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    BindingConsistencyError: status.HTTP_409_CONFLICT,
    IncompleteBindingError: status.HTTP_409_CONFLICT,
    DuplicateObligationError: status.HTTP_409_CONFLICT,
    CollaboratorError: status.HTTP_502_BAD_GATEWAY,
}


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Exception handlers
@app.exception_handler(RentBackOfficeError)
async def domain_exception_handler(request: Request, exc: RentBackOfficeError):
    """Map domain errors onto the error envelope"""
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    log = logger.error if isinstance(exc, (BindingConsistencyError, IncompleteBindingError)) else logger.warning
    log(
        exc.message,
        extra={
            "path": request.url.path,
            "code": exc.code,
            "correlation_id": getattr(request.state, "request_id", None),
        }
    )
    return _error_response(status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "errors": jsonable_encoder(exc.errors()),
            "correlation_id": getattr(request.state, "request_id", None),
        }
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": {"code": "VALIDATION_ERROR", "message": "Request validation failed"},
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "correlation_id": getattr(request.state, "request_id", None),
        },
        exc_info=True
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error"
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rent_backoffice.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
