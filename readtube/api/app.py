"""
FastAPI application for the ReadTube summarization service.
"""

import time
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from readtube.api.account_routes import router as account_router
from readtube.api.dependencies import Services, build_services
from readtube.api.routes import router as video_router
from readtube.config import config as default_config
from readtube.db.database import create_db_engine, create_session_factory, init_db
from readtube.utils.error_handling import ReadTubeError
from readtube.utils.logger import logging


def _validation_message(exc: RequestValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems) or "Invalid request."


def create_app(config=None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration class; the environment's config when None
        services: Prebuilt clients; built from ``config`` when None
    """
    config = config or default_config
    config.initialize()

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description="An API for transcribing and summarizing YouTube videos",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = create_db_engine(config.DATABASE_URL)
    init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.services = services or build_services(config)
    logging.info(f"{config.APP_NAME} {config.APP_VERSION} ready")

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Middleware to add processing time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    @app.exception_handler(ReadTubeError)
    async def readtube_error_handler(request: Request, exc: ReadTubeError):
        if exc.status_code >= 500:
            logging.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
        else:
            logging.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": _validation_message(exc), "code": "VALIDATION_ERROR"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled exceptions."""
        logging.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        logging.error("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected error occurred.", "code": "INTERNAL_ERROR"},
        )

    app.include_router(video_router)
    app.include_router(account_router)

    @app.get("/")
    async def root():
        """Root endpoint returning basic API information."""
        return {
            "name": config.APP_NAME,
            "version": config.APP_VERSION,
            "description": "YouTube Video Summarizer API",
        }

    return app
