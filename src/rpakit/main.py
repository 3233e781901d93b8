import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rpakit import __version__
from rpakit.config import settings
from rpakit.logging_config import configure_logging
from rpakit.routers import api_router

configure_logging(settings.log_mode)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info("Serving archives from %s", settings.archive_dir)
    yield
    logger.info("Shutdown complete")


app = FastAPI(
    title="rpakit",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
