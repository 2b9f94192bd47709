# backend/homeskillet/routers/health.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import error_body, ok

log = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health():
    return ok({"status": "ok", "ts": datetime.now(timezone.utc).isoformat(), "version": settings.app_version})


@router.get("/db")
def health_db(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        log.exception("database health check failed")
        return JSONResponse(status_code=503, content=error_body("Database unavailable", code="db_unavailable"))
    return ok({"status": "ok", "database": "reachable"})
