from fastapi import APIRouter, Depends, HTTPException, Request, status
from app.core.config import settings
from app.db.core import get_session
from sqlmodel import Session, text
from loguru import logger

router = APIRouter()


@router.get("/", status_code=status.HTTP_200_OK)
def index():
    return {"status": "API is running", "service": settings.app_name}


@router.get("/readiness", status_code=status.HTTP_200_OK)
def readiness_check(request: Request, session: Session = Depends(get_session)):
    try:
        session.exec(text("SELECT 1"))
    except Exception:
        logger.exception("Database readiness check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready"
        )

    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ready",
        "database": "online",
        "reconcile_scheduler": "running" if scheduler and scheduler.running else "off",
    }
