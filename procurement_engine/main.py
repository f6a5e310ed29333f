"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from procurement_engine import __version__
from procurement_engine.api import risk, comparison, forecast
from procurement_engine.config import settings
from procurement_engine.logging_config import configure_logging
from procurement_engine.storage import SnapshotStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and load the read-only snapshot."""
    configure_logging()
    logger.info(f"Loading procurement snapshot from {settings.DATA_PATH}...")
    SnapshotStore.get()
    logger.info(f"Risk provider: {settings.RISK_PROVIDER}")
    yield
    logger.info("Shutting down procurement engine")
    risk.service.close()


app = FastAPI(
    title="Procurement Risk Engine",
    description="Supplier risk scoring, vendor ranking and procurement forecasting",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(risk.router, prefix="/api/v1")
app.include_router(comparison.router, prefix="/api/v1")
app.include_router(forecast.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"service": "Procurement Risk Engine", "version": __version__}


@app.get("/health")
async def health():
    try:
        snapshot = SnapshotStore.get().snapshot
        return {
            "status": "healthy",
            "vendors": len(snapshot.vendors),
            "items": len(snapshot.items),
            "provider": settings.RISK_PROVIDER,
        }
    except Exception as e:
        return {"status": "degraded", "storage": str(e)}
