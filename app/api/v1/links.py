from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_actor, get_link_service
from app.services.link import LinkService
from app.models.link import ReconcileResult

router = APIRouter()


@router.post(
    "/reconcile",
    response_model=ReconcileResult,
    summary="Expire inherited evidence",
    description="Downgrades links whose inherited base test has expired. Safe to repeat.",
)
def reconcile_expirations(
    as_of: Optional[datetime] = Query(None, description="Defaults to now (UTC)"),
    actor: str = Depends(get_actor),
    service: LinkService = Depends(get_link_service)
):
    return service.reconcile_expirations(as_of=as_of, actor=actor)
