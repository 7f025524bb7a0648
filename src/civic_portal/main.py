"""
Civic Portal API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Background job scheduler (code expiry sweep)
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from civic_portal.api import api_router
from civic_portal.core.config import settings
from civic_portal.core.database import async_session_maker, close_db, init_db
from civic_portal.core.redis import close_redis, get_redis, init_redis
from civic_portal.core.scheduler import (
    list_registered_jobs,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from civic_portal.modules.codes.jobs import register_code_jobs

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown of Redis, the database and the
    background job scheduler.
    """
    print(f"Starting Civic Portal API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    try:
        # Register jobs before starting the scheduler
        register_code_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield

    print("Shutting down Civic Portal API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Civic Portal API",
    description="Citizen services portal: registration review and account activation",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Civic Portal API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}


# ============================================
# Debug Endpoints (development only)
# ============================================

if settings.is_development:

    @app.get("/debug/db", tags=["Debug"])
    async def debug_db():
        """Test database connection."""
        try:
            async with async_session_maker() as session:
                result = await session.execute(text("SELECT 1"))
                return {"database": "connected", "result": result.scalar()}
        except Exception as e:
            return {"database": "error", "message": str(e)}

    @app.get("/debug/redis", tags=["Debug"])
    async def debug_redis():
        """Test Redis connection."""
        client = get_redis()
        if client is None:
            return {"redis": "not initialized"}
        try:
            await client.ping()
            return {"redis": "connected"}
        except Exception as e:
            return {"redis": "error", "message": str(e)}

    @app.get("/debug/jobs", tags=["Debug"])
    async def list_jobs():
        """List registered background jobs and their next run time."""
        return {"jobs": list_registered_jobs()}

    @app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
    async def trigger_job(job_id: str):
        """
        Run a background job now, bypassing its schedule.

        Available jobs:
            - codes_expire_stale
        """
        try:
            return await trigger_job_manually(job_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
