import logging
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from lecture_summary.container import AppContainer
from lecture_summary.routers import summary
from lecture_summary.utils.config import Settings
from lecture_summary.utils.errors import (
    NotFoundError,
    SummaryServiceError,
    ValidationError,
)
from lecture_summary.utils.logging import setup_logging
from lecture_summary.utils.metrics import render_metrics

ContainerFactory = Callable[[Settings], Awaitable[AppContainer]]

ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logging.error(
                f"Request failed: {request.method} {request.url.path} - {type(e).__name__}: {e}"
            )
            raise
        duration_ms = (time.perf_counter() - started) * 1000
        logging.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms"
        )
        return response


def create_app(
    settings: Optional[Settings] = None,
    container_factory: ContainerFactory = AppContainer.create,
) -> FastAPI:
    """Builds the FastAPI application. Fails if required configuration is missing."""
    settings = settings or Settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan event handler for startup and shutdown."""
        # Startup
        container = await container_factory(settings)
        app.state.container = container
        await container.start()
        logging.info(f"Summary service listening on {settings.host}:{settings.port}")
        logging.info(f"Environment: {settings.app_env}")
        yield
        # Shutdown
        logging.info("Shutting down server...")
        await container.close()

    app = FastAPI(
        title="Lecture Summary Service",
        lifespan=lifespan,
        docs_url="/docs/summary",
        openapi_url="/docs/summary/openapi.json",
        redoc_url=None,
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Health endpoints
    @app.get("/healthz", tags=["health"])
    async def healthz():
        return {"status": "ok"}

    @app.get("/readyz", tags=["health"])
    async def readyz(request: Request):
        try:
            await request.app.state.container.store.ping()
        except Exception as e:
            logging.warning(f"Readiness check failed: {e}")
            return JSONResponse(status_code=500, content={"status": "not ready"})
        return {"status": "ready"}

    # Prometheus metrics
    @app.get("/metrics", tags=["health"])
    async def metrics():
        body, content_type = render_metrics()
        return Response(content=body, media_type=content_type)

    # Exception handlers
    @app.exception_handler(SummaryServiceError)
    async def service_exception_handler(request: Request, exc: SummaryServiceError):
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        if status_code == 500:
            logging.error(
                f"Unhandled service error for {request.method} {request.url.path}: {exc}",
                exc_info=exc,
            )
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logging.error(
            f"Unhandled exception for {request.method} {request.url.path}: {type(exc).__name__}",
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(summary.router)
    return app
