from datetime import datetime
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_dashboard_service
from app.db.schema import Priority
from app.services.dashboard import DashboardService
from app.models.dashboard import SlaRead, RiskScoreRead, OpenWorkItem

router = APIRouter()


@router.get("/sla", response_model=SlaRead, summary="SLA status of a due date")
def get_sla_status(
    due_date: datetime = Query(..., description="UTC due date"),
    priority: Priority = Query(Priority.NORMAL),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.get_sla_status(due_date=due_date, priority=priority)


@router.get(
    "/factories/{factory_id}/risk",
    response_model=RiskScoreRead,
    summary="Factory risk score",
)
def get_risk_score(
    factory_id: UUID,
    service: DashboardService = Depends(get_dashboard_service)
):
    """
    Weighted 0-100 score:

    - **Test failures** 40%
    - **Inspection failures** 30%
    - **Late delivery** 20%
    - **Certificate status** 10%
    """
    return service.get_risk_score(factory_id)


@router.get(
    "/open-work",
    response_model=List[OpenWorkItem],
    summary="Open tests and inspections with SLA",
)
def list_open_work(
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.list_open_work()
