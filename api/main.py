from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from config.waitlist_config import WaitlistConfig, load_config
from dependencies import build_waitlist_service
from logging_config import setup_logging
from redis_client import RedisClient
from routers import status, waitlist
from services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


def create_app(config: Optional[WaitlistConfig] = None, service: Optional[WaitlistService] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        config: Configuration to use (defaults to the environment)
        service: Pre-built waitlist service; built from config at startup when omitted
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not config.has_recaptcha_secret:
            logger.error("RECAPTCHA_SECRET_KEY is not set; waitlist submissions will fail with 500")

        owns_service = service is None
        if owns_service:
            app.state.waitlist_service = await build_waitlist_service(config)
        logger.info(f"Waitlist API ready (rate limit backend: {config.rate_limit_backend})")
        try:
            yield
        finally:
            if owns_service:
                built = app.state.waitlist_service
                if built.verifier is not None:
                    await built.verifier.aclose()
                built.store.close()
                await RedisClient.close()

    app = FastAPI(
        title="Waitlist API",
        version="1.0.0",
        description="Backend API for the marketing site waitlist",
        lifespan=lifespan,
    )

    if service is not None:
        app.state.waitlist_service = service

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include Routers
    app.include_router(status.router, prefix="/api")
    app.include_router(waitlist.router, prefix="/api")

    # Exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"message": "Validation error", "details": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error"},
        )

    return app


def get_app() -> FastAPI:
    """Entry point for `uvicorn main:get_app --factory`"""
    config = load_config()
    setup_logging(log_level=config.log_level)
    return create_app(config)
