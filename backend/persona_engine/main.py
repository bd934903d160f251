import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api.middleware import setup_middleware
from .api.routes import SERVICE_NAME, router
from .config import settings
from .core import (
    QuizEngineError, QuizGraph, SessionNotFoundError, SessionRestoreError,
    SessionStore, load_graph_file
)

logger = logging.getLogger(__name__)


def setup_logging():
    """Configure application logging"""
    log_level = settings.LOG_LEVEL.upper()
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=log_format,
        handlers=handlers
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.info(f"Logging configured at {log_level} level")


def create_app(graph: Optional[QuizGraph] = None) -> FastAPI:
    """
    Build the FastAPI application.

    When no graph is passed, the lifespan handler loads GRAPH_FILE; a graph
    that fails validation aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {SERVICE_NAME}...")

        try:
            quiz_graph = graph
            if quiz_graph is None:
                quiz_graph = load_graph_file(str(settings.graph_path))

            app.state.graph = quiz_graph
            app.state.session_store = SessionStore(
                quiz_graph,
                max_sessions=settings.MAX_ACTIVE_SESSIONS,
                dominant_count=settings.DOMINANT_TRAIT_COUNT,
                low_threshold=settings.LOW_LEVEL_THRESHOLD,
                high_threshold=settings.HIGH_LEVEL_THRESHOLD
            )
            logger.info(
                f"{SERVICE_NAME} ready: {len(quiz_graph.nodes)} nodes, "
                f"graph {quiz_graph.fingerprint[:12]}"
            )

        except Exception as e:
            logger.error(f"Failed to start application: {e}")
            raise

        yield

        logger.info(
            f"Shutting down {SERVICE_NAME} with "
            f"{len(app.state.session_store.sessions)} sessions in memory"
        )

    app = FastAPI(
        title=SERVICE_NAME,
        description="Branching personality quiz with trait scoring and profile resolution",
        version=__version__,
        lifespan=lifespan
    )

    setup_middleware(app)
    app.include_router(router, prefix="/api/v1", tags=["Quiz"])

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
        logger.warning(f"Unknown session on {request.url.path}: {exc.session_id}")
        return JSONResponse(
            status_code=404,
            content={
                "error_type": "session_not_found",
                "message": str(exc),
                "request_id": getattr(request.state, "request_id", "unknown")
            }
        )

    @app.exception_handler(SessionRestoreError)
    async def session_restore_handler(request: Request, exc: SessionRestoreError):
        logger.warning(f"Session restore rejected: {exc}")
        return JSONResponse(
            status_code=400,
            content={
                "error_type": "session_restore_error",
                "message": str(exc),
                "request_id": getattr(request.state, "request_id", "unknown")
            }
        )

    @app.exception_handler(QuizEngineError)
    async def quiz_engine_error_handler(request: Request, exc: QuizEngineError):
        logger.warning(f"Quiz engine error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=400,
            content={
                "error_type": "quiz_error",
                "message": str(exc),
                "request_id": getattr(request.state, "request_id", "unknown")
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error on {request.url}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error_type": "internal_error",
                "message": "An unexpected error occurred",
                "request_id": getattr(request.state, "request_id", "unknown"),
                "timestamp": datetime.now().isoformat()
            }
        )

    return app


app = create_app()


def main():
    """Main entry point for running the application"""
    setup_logging()
    logger.info(f"Server will run on {settings.HOST}:{settings.PORT}")
    logger.info(f"Quiz graph: {settings.graph_path}")

    try:
        uvicorn.run(
            "persona_engine.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=settings.RELOAD and settings.DEBUG,
            log_level="debug" if settings.DEBUG else "info",
            # Sessions live in process memory
            workers=1
        )
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
