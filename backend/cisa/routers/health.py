from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlmodel import Session, text

from cisa.db import get_session

router = APIRouter(prefix="/api", tags=["health"])

SERVICE_NAME = "cisa-backend"
VERSION = "0.1.0"


@router.get("/health")
async def health(session: Session = Depends(get_session)):
    db_status = "ok"
    try:
        session.exec(text("SELECT 1"))
    except Exception as exc:
        db_status = f"error: {exc.__class__.__name__}"

    return {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "checks": {"database": db_status},
    }


@router.get("/health/ready")
async def readiness(session: Session = Depends(get_session)):
    try:
        session.exec(text("SELECT 1"))
    except Exception:
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "service": SERVICE_NAME},
        )

    return {"status": "ready", "service": SERVICE_NAME}
