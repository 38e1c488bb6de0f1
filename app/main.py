"""
FastAPI Main Application
Investment lifecycle API with optional maturity sweep scheduler
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from app.config import settings
from app.core.logging import setup_logging
from app.infrastructure.db.database import init_db, close_db, get_session_factory
from app.api.errors import register_error_handlers
from app.scheduler.maturity_sweep import MaturityScheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

maturity_scheduler: MaturityScheduler | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of database and scheduler
    """
    global maturity_scheduler

    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Investment Platform API")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    if settings.MATURITY_SWEEP_ENABLED:
        try:
            maturity_scheduler = MaturityScheduler(get_session_factory())
            maturity_scheduler.start()
        except Exception as e:
            logger.error(f"❌ Failed to start maturity scheduler: {e}")
    else:
        logger.info("⏰ Maturity sweep disabled")

    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ Ledger atomicity: {settings.LEDGER_ATOMICITY}")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Investment Platform API...")

    if maturity_scheduler:
        maturity_scheduler.stop()

    await close_db()
    logger.info("✅ Database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Investment Platform",
    description="Fixed-income investments with an atomic balance ledger",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Investment Platform API",
        "version": "1.0.0",
        "docs": "/docs"
    }


# Import and include routers
from app.api.routes import health, investments, products

app.include_router(health.router, tags=["Health"])
app.include_router(investments.router, prefix="/api/v1/investments", tags=["Investments"])
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
