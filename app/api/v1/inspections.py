from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from app.core.dependencies import get_actor, get_inspection_service
from app.db.schema import InspectionStatus
from app.services.inspection import InspectionService
from app.models.dashboard import OpenWorkItem
from app.models.inspection import (
    InspectionCreate, InspectionOutcomeInput, InspectionRead
)

router = APIRouter()


@router.post(
    "/",
    response_model=InspectionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule an inspection",
)
def schedule_inspection(
    payload: InspectionCreate,
    actor: str = Depends(get_actor),
    service: InspectionService = Depends(get_inspection_service)
):
    return service.schedule_inspection(data=payload, actor=actor)


@router.get("/", response_model=List[InspectionRead], summary="List inspections")
def list_inspections(
    factory_id: Optional[UUID] = Query(None),
    inspection_status: Optional[InspectionStatus] = Query(None, alias="status"),
    service: InspectionService = Depends(get_inspection_service)
):
    return service.list_inspections(factory_id=factory_id, inspection_status=inspection_status)


@router.get(
    "/open",
    response_model=List[OpenWorkItem],
    summary="Scheduled inspections with SLA",
)
def list_open_inspections(
    service: InspectionService = Depends(get_inspection_service)
):
    return service.list_open_inspections()


@router.post(
    "/{inspection_id}/outcome",
    response_model=InspectionRead,
    summary="Record inspection outcome",
    description="PASS or FAIL. Final once recorded.",
)
def record_inspection_outcome(
    inspection_id: UUID,
    payload: InspectionOutcomeInput,
    actor: str = Depends(get_actor),
    service: InspectionService = Depends(get_inspection_service)
):
    return service.record_outcome(inspection_id=inspection_id, data=payload, actor=actor)


@router.post(
    "/{inspection_id}/cancel",
    response_model=InspectionRead,
    summary="Cancel a scheduled inspection",
)
def cancel_inspection(
    inspection_id: UUID,
    actor: str = Depends(get_actor),
    service: InspectionService = Depends(get_inspection_service)
):
    return service.cancel_inspection(inspection_id=inspection_id, actor=actor)
