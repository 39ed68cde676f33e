"""
FastAPI application for Social Service
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from .config import settings
from .infrastructure.database import db
from .infrastructure.cache import cache
from .infrastructure.kafka_producer import kafka_producer
from .application.engine import build_engine
from .application.events import EventBus, FailedDeliveryRetrier
from .api.errors import register_exception_handlers
from .api.routes import (
    follows_router,
    engagement_router,
    tags_router,
    notifications_router,
    content_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Social Service...")

    use_database = settings.STORAGE_BACKEND == "postgres"
    if use_database:
        await db.connect()
        logger.info("Database connected")

    # Connect to Redis
    await cache.connect()
    logger.info("Redis cache initialized")

    # Start Kafka producer
    await kafka_producer.start()
    logger.info("Kafka producer started")

    engine = build_engine(
        settings.STORAGE_BACKEND,
        database=db if use_database else None,
        cache=cache,
        bus=EventBus(max_failed=settings.EVENT_FAILED_QUEUE_SIZE),
    )
    kafka_producer.attach(engine.bus)
    app.state.engine = engine

    # Re-deliver failed notifications in the background
    retrier = FailedDeliveryRetrier(
        engine.bus,
        interval=settings.EVENT_RETRY_INTERVAL_SECONDS,
        max_attempts=settings.EVENT_RETRY_MAX_ATTEMPTS,
    )
    await retrier.start()

    logger.info(f"Social Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Social Service...")

    await retrier.stop()

    if engine.bus.failed:
        logger.warning(f"{len(engine.bus.failed)} event deliveries still failed at shutdown")

    await kafka_producer.stop()
    await cache.disconnect()

    if use_database:
        await db.disconnect()

    logger.info("Social Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Instagram Social Service - Follows, engagement counters, tags and notifications",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(follows_router)
app.include_router(engagement_router)
app.include_router(tags_router)
app.include_router(notifications_router)
app.include_router(content_router)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "social_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
