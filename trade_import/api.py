"""
Trade Import - API.

============================================================
RESPONSIBILITY
============================================================
FastAPI application serving the NT8 import endpoints and a
health check. Tables are created on startup.
============================================================
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from storage.database import create_all_tables, verify_database_connection
from trade_import.router import router as nt8_router

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    database: bool
    timestamp: str
    uptime_seconds: float = 0


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_all_tables()
    yield


app = FastAPI(
    title="Trade Import API",
    description="Imports NinjaTrader 8 trade performance exports",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(nt8_router)

_startup_time = datetime.now(timezone.utc)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check():
    """Health check endpoint; degraded when the database does not answer."""
    now = datetime.now(timezone.utc)
    database_ok = verify_database_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        database=database_ok,
        timestamp=now.isoformat(),
        uptime_seconds=(now - _startup_time).total_seconds(),
    )
