"""
SignalPro Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signalpro.core.config import settings
from signalpro.api.v1 import router as api_v1_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Live data: {settings.enable_live_data}, advisory: {settings.advisory_enabled}")

    # Initialize SQLite database
    from signalpro.db.database import init_db, close_db
    await init_db()

    # Initialize Redis cache
    from signalpro.services.cache.redis_client import init_redis, close_redis
    redis_client = await init_redis()
    if redis_client is None:
        logger.info("Redis unavailable - using in-memory candle cache")

    yield

    # Shutdown
    logger.info("Shutting down...")
    from signalpro.services.market_data import get_market_data_provider
    await get_market_data_provider().close()
    await close_redis()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    SignalPro Technical Analysis & Signal Engine API

    ## Pipeline
    - **Market Data**: Candles and quotes from Upstox (or deterministic mock data)
    - **Indicator Engine**: Trend, momentum, volume and volatility indicators (pure Python/NumPy)
    - **Scoring**: 0-10 composite setup score for swing or intraday profiles
    - **Plan Synthesizer**: LLM advisory with a deterministic rule-based fallback
    - **Position Sizing**: Fixed-fractional sizing against a capital base

    Advisory numbers only. No order execution.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - allow both frontend ports
cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Liveness plus the data source and advisory providers in use."""
    from signalpro.services.llm.client import get_llm_client

    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "market_data": "upstox" if settings.enable_live_data else "mock",
        "advisory_providers": (
            [p.value for p in get_llm_client().providers] if settings.advisory_enabled else []
        ),
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "SignalPro Backend API",
        "docs": "/docs",
        "health": "/health",
    }
