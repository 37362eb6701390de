"""
FastAPI application initialization and configuration.
"""
import logging
from fastapi import FastAPI

from .middleware import log_requests_middleware
from .endpoints import (
    accounts_router,
    auth_router,
    health_router,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the FastAPI app with all routers and middleware"""
    application = FastAPI(title="Kiro Account Auth", version="1.0.0")

    application.middleware("http")(log_requests_middleware)

    application.include_router(health_router)
    application.include_router(auth_router)
    application.include_router(accounts_router)

    logger.debug("FastAPI application initialized with all routers and middleware")
    return application


app = create_app()
