"""Lifecycle management for the application."""
from contextlib import asynccontextmanager
from fastapi import FastAPI

from art_rag.core.config import settings
from art_rag.core.logging import get_logger
from art_rag.core.container import ServiceContainer, set_container

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle.

    A container placed on app.state before startup (tests) is initialized
    instead of a fresh one.
    """
    logger.info("Starting art collection RAG service...")

    container = getattr(app.state, "container", None) or ServiceContainer()

    try:
        await container.initialize(settings)
        set_container(container)
        app.state.container = container
        logger.info("RAG service started successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise

    yield

    logger.info("Shutting down RAG service...")
    await container.shutdown()
    set_container(None)
    logger.info("RAG service shut down")
