"""
Main application entry point
Starts the FastAPI server for the wrapped-BTC race service
"""
import uvicorn
from contextlib import asynccontextmanager
import logging

from wbtc_race.config.logging_config import setup_logging
from wbtc_race.api.rest_api import app
from wbtc_race.config.settings import settings
from wbtc_race.core.service_manager import ServiceManager

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    """Application lifespan manager"""
    # Startup
    service_manager = ServiceManager.get_instance()
    await service_manager.initialize()
    logger.info(f"{settings.APP_NAME} started")

    yield

    # Shutdown
    await service_manager.cleanup()


# Update app with lifespan
app.router.lifespan_context = lifespan


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
