"""
FastAPI application for the patient actor backend

Run with:
    uvicorn patient_actors.api.main:app --reload
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..database.config import close_database, init_database
from .exceptions import register_exception_handlers
from .routers import chat, metrics, patient_actors, rubrics, sessions, submissions

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    logger.info("Patient actor API started", extra={"version": __version__})
    try:
        yield
    finally:
        close_database()
        logger.info("Patient actor API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Patient Actor Studio API",
        description="Simulated patient interviews: personas, chat sessions, submissions and rubrics",
        version=__version__,
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["Monitoring"])
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    app.include_router(patient_actors.router)
    app.include_router(chat.router)
    app.include_router(sessions.router)
    app.include_router(submissions.router)
    app.include_router(rubrics.router)
    app.include_router(metrics.router)
    return app


configure_logging()
app = create_app()
