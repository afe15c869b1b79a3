"""
Asura Scans Source - FastAPI Application.

Main entry point for the web API.
"""

from contextlib import asynccontextmanager
import logging
from uuid import uuid4

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from .deps import close_source, get_source
from .routes import source as source_router
from .routes import settings as settings_router

from core.logging_config import init_default_logging

init_default_logging()
logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    request_id = str(uuid4())
    request.state.request_id = request_id
    return request_id


def _build_error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    detail,
) -> JSONResponse:
    request_id = _get_request_id(request)
    response = JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "error": {
                "code": code,
                "message": message,
                "request_id": request_id,
            },
        },
    )
    response.headers["X-Request-Id"] = request_id
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the source on startup, close its HTTP client on shutdown."""
    get_source()
    yield
    await close_source()
    logger.info("Shutting down")


app = FastAPI(
    title="Asura Scans Source API",
    description="Catalog, chapter and page resolution for Asura Scans",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(source_router.router, prefix="/api/v1")
app.include_router(settings_router.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else f"HTTP {exc.status_code}"
    return _build_error_response(
        request,
        status_code=exc.status_code,
        code=f"HTTP_{exc.status_code}",
        message=message,
        detail=detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _build_error_response(
        request,
        status_code=422,
        code="VALIDATION_ERROR",
        message="Request validation failed",
        detail=exc.errors(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(
        "[%s] Unhandled exception on %s %s",
        _get_request_id(request),
        request.method,
        request.url.path,
    )
    return _build_error_response(
        request,
        status_code=500,
        code="INTERNAL_SERVER_ERROR",
        message="Internal server error",
        detail="Internal server error",
    )


if __name__ == "__main__":
    import uvicorn

    from .deps import get_settings

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
