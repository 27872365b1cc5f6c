"""
Storefront Sync API - FastAPI Backend
Accepts job messages from the upstream scheduler and runs them against the
marketplace API and the seller console.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from pydantic import BaseModel, Field

from api.config import config
from api.dispatcher import JobDispatcher
from api.logging_config import logger
from api.services import build_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info(f"Starting Storefront Sync API for store '{config.STORE}'...")
    missing = config.validate()
    if missing:
        logger.warning(f"Missing settings: {', '.join(missing)}")

    services = build_services(config)
    await services.start()
    logger.info("Database initialized, browser launched")

    app.state.services = services
    app.state.dispatcher = JobDispatcher(services, store=config.STORE)

    yield
    # Shutdown
    logger.info("Shutting down Storefront Sync API...")
    await services.close()
    logger.info("Browser sessions closed")


# Initialize FastAPI app
app = FastAPI(
    title="Storefront Sync API",
    description="Marketplace storefront synchronization jobs",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if config.DEBUG else None,
    redoc_url="/redoc" if config.DEBUG else None,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start_time = datetime.now()
    response = await call_next(request)
    duration = (datetime.now() - start_time).total_seconds() * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration:.2f}ms)")
    return response


# === Models ===

class JobRequest(BaseModel):
    pattern: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    store: Optional[str] = None


# === Endpoints ===

@app.get("/health")
async def health():
    """Detailed health check."""
    services = getattr(app.state, "services", None)
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "store": config.STORE,
        "browser": services.sessions.get_stats() if services else None,
        "version": "1.0.0",
    }


@app.get("/queues")
async def queue_stats(request: Request):
    """Queue counters for the configured store."""
    return request.app.state.dispatcher.get_stats()


@app.post("/jobs")
async def submit_job(job: JobRequest, request: Request):
    """Run one job to completion and return its result envelope."""
    message = {"pattern": job.pattern, "payload": dict(job.payload)}
    if job.store:
        message["store"] = job.store
    return await request.app.state.dispatcher.dispatch(message)
