"""FastAPI application entrypoint with Lambda handler."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from .config import settings
from .database import init_db
from .routes import drafts, health, ingest, integrations, stats, tasks
from .services.scheduler import Scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(f"Starting {settings.service_name} in {settings.environment} mode")
    init_db()

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = Scheduler()
        scheduler.start()

    yield

    if scheduler:
        scheduler.stop()
    logger.info(f"Shutting down {settings.service_name}")


app = FastAPI(
    title="TaskFlow Service",
    description="Gamified task manager with AI capture from email, chat and bot messages",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(tasks.router)
app.include_router(drafts.router)
app.include_router(integrations.router)
app.include_router(ingest.router)
app.include_router(stats.router)

# Lambda handler via Mangum; pollers do not run under Lambda
handler = Mangum(app, lifespan="off")
