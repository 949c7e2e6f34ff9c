"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from preflight import __version__
from preflight.api.dependencies import init_dependencies
from preflight.api.routes import router
from preflight.validation import PdfValidator

logger = logging.getLogger(__name__)


def create_app(
    validator: PdfValidator,
    cors_origins: list[str] = None,
    debug: bool = False
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        validator: Configured PDF validator (owns config, probe and limiter)
        cors_origins: List of allowed CORS origins (None = allow all)
        debug: Enable debug mode

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="PDF Preflight Service",
        description="Pre-press validation of print-ready PDF files",
        version=__version__,
        debug=debug
    )

    # CORS configuration
    if cors_origins is None:
        # Development: allow all origins
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    init_dependencies(validator)

    # Include routes
    app.include_router(router)

    @app.on_event("startup")
    async def startup():
        logger.info("PDF Preflight Service starting...")
        if await validator.probe.is_available():
            logger.info(f"  Ink coverage: {validator.probe.name} available")
        else:
            logger.warning("  Ink coverage: unavailable, color mode will be structural only")

        config = validator.config
        logger.info(
            f"  Limits: max file {config.max_file_size} bytes, "
            f"tool timeout {config.gs_timeout_sec}s, concurrency {config.gs_concurrency}"
        )

    @app.on_event("shutdown")
    async def shutdown():
        logger.info("PDF Preflight Service shutting down...")

    return app
