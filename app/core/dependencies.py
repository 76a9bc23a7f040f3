from typing import Optional
from fastapi import Depends, Header
from sqlmodel import Session

from app.db.core import get_session

from app.services.component import ComponentService
from app.services.component_test import TestLedgerService
from app.services.dashboard import DashboardService
from app.services.inspection import InspectionService
from app.services.lifecycle import LifecycleService
from app.services.link import LinkService
from app.services.style import StyleService
from app.services.supplier import SupplierService


def get_actor(x_actor_id: Optional[str] = Header(default=None)) -> str:
    """
    Who is performing the request. Recorded for authorship, never
    interpreted; authentication lives outside this service.
    """
    return x_actor_id or "system"


def get_component_service(session: Session = Depends(get_session)) -> ComponentService:
    return ComponentService(session=session)


def get_style_service(session: Session = Depends(get_session)) -> StyleService:
    return StyleService(session=session)


def get_link_service(session: Session = Depends(get_session)) -> LinkService:
    return LinkService(session=session)


def get_test_ledger_service(session: Session = Depends(get_session)) -> TestLedgerService:
    return TestLedgerService(session=session)


def get_lifecycle_service(session: Session = Depends(get_session)) -> LifecycleService:
    return LifecycleService(session=session)


def get_supplier_service(session: Session = Depends(get_session)) -> SupplierService:
    return SupplierService(session=session)


def get_inspection_service(session: Session = Depends(get_session)) -> InspectionService:
    return InspectionService(session=session)


def get_dashboard_service(session: Session = Depends(get_session)) -> DashboardService:
    return DashboardService(session=session)
