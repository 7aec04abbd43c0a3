from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from core.context import AppContext, build_app_context
from core.errors import ServiceError, ValidationError
from core.logging import get_logger, setup_logging
from core.settings import Settings
from web import routers

logger = get_logger(__name__)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Log failures from tasks nobody awaited instead of losing them."""
    exc = context.get("exception")
    logger.error("Unhandled event loop error: %s", context.get("message"), exc_info=exc)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
    context: Optional[AppContext] = getattr(app.state, "context", None)
    if context is None:
        context = build_app_context(Settings.from_env())
        app.state.context = context
    if context.sweeper is not None:
        context.sweeper.start()
    try:
        yield
    finally:
        if context.sweeper is not None:
            await context.sweeper.stop()


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed with %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_detail())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(payload={"errors": jsonable_encoder(exc.errors())})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_detail())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ServiceError().to_detail(),
    )


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the API; ``context`` replaces the environment-driven wiring (tests)."""
    load_dotenv()
    setup_logging()
    settings = context.settings if context is not None else Settings.from_env()

    app = FastAPI(
        title=settings.app_name,
        description="Repleno subscriptions, Webpay checkout, AI advisory and support API.",
        version="0.1.0",
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get("/", summary="Health Check", tags=["Default"])
    def health_check():
        """Liveness probe."""
        return {"status": "ok", "message": f"{settings.app_name} is running."}

    @app.get("/metrics", include_in_schema=False)
    def prometheus_metrics():
        """Expose Prometheus metrics for Cloud Monitoring."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(routers.payments.router)
    app.include_router(routers.advisory.router)
    app.include_router(routers.tickets.router)
    app.include_router(routers.admin.router)
    app.include_router(routers.health.router)
    return app


app = create_app()
