# backend/notesearch/router/health.py
from __future__ import annotations
import logging
import time
from fastapi import APIRouter, HTTPException, Request

from notesearch.db.session import DatabasePool, ping_db

logger = logging.getLogger("notesearch.router.health")

router = APIRouter(tags=["health"])
startup_time = time.time()

@router.get("/health")
async def health_check():
    """Liveness - process is up."""
    return {"status": "ok", "uptime_seconds": round(time.time() - startup_time, 1)}

@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness - pipeline is wired and can take requests."""
    if getattr(request.app.state, "container", None) is None:
        raise HTTPException(status_code=503, detail="Service starting up")
    return {"status": "ready", "mode": request.app.state.container.mode}

@router.get("/db-ping")
async def db_ping():
    """Simple DB connectivity test."""
    ok, message = await ping_db()
    return {"ok": ok, "message": message, "pool_initialized": DatabasePool.pool is not None}
