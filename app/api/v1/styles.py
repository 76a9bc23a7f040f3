from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from app.core.dependencies import (
    get_actor,
    get_style_service,
    get_component_service,
    get_link_service,
    get_lifecycle_service,
    get_test_ledger_service,
    get_dashboard_service,
)
from app.db.schema import StyleStage, TestLevel
from app.services.component import ComponentService
from app.services.component_test import TestLedgerService
from app.services.dashboard import DashboardService
from app.services.lifecycle import LifecycleService
from app.services.link import LinkService
from app.services.style import StyleService

from app.models.component import ComponentRead
from app.models.component_test import ComponentTestRead
from app.models.dashboard import ComplianceSummaryRead
from app.models.link import LinkCreate, LinkRead
from app.models.style import (
    StyleCreate, StyleRead, StageRead, StageAdvanceRead, GoldSealSubmission
)

router = APIRouter()


@router.post(
    "/",
    response_model=StyleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a style",
)
def create_style(
    payload: StyleCreate,
    actor: str = Depends(get_actor),
    service: StyleService = Depends(get_style_service)
):
    """
    Creates a product record at stage 'base'.

    - **Fabric technologist** must be of type 'fabric'.
    - **Garment technologist** must be of type 'garment'.
    - **Factory** must belong to the supplier.
    """
    return service.create_style(data=payload, actor=actor)


@router.get("/", response_model=List[StyleRead], summary="List styles")
def list_styles(
    stage: Optional[StyleStage] = Query(None),
    supplier_id: Optional[UUID] = Query(None),
    factory_id: Optional[UUID] = Query(None),
    service: StyleService = Depends(get_style_service)
):
    return service.list_styles(stage=stage, supplier_id=supplier_id, factory_id=factory_id)


@router.get("/{style_id}", response_model=StyleRead, summary="Get a style")
def get_style(
    style_id: UUID,
    service: StyleService = Depends(get_style_service)
):
    return service.read_style(style_id)


# ==========================================================================
# LIFECYCLE
# ==========================================================================

@router.get("/{style_id}/stage", response_model=StageRead, summary="Current stage")
def get_style_stage(
    style_id: UUID,
    service: StyleService = Depends(get_style_service)
):
    return service.get_stage(style_id)


@router.post(
    "/{style_id}/advance",
    response_model=StageAdvanceRead,
    summary="Advance to the next stage",
)
def advance_style_stage(
    style_id: UUID,
    actor: str = Depends(get_actor),
    service: LifecycleService = Depends(get_lifecycle_service)
):
    """
    Moves the style one stage forward.

    Returns **409 guard_failed** with `failing_component_ids` when evidence
    is missing, failing or expired. A Gold Seal style is returned unchanged.
    """
    return service.advance(style_id=style_id, actor=actor)


@router.post(
    "/{style_id}/gold-seal",
    response_model=StyleRead,
    summary="Record a Gold Seal Workbook event",
)
def record_gold_seal_submission(
    style_id: UUID,
    payload: GoldSealSubmission,
    actor: str = Depends(get_actor),
    service: StyleService = Depends(get_style_service)
):
    return service.record_gold_seal_submission(
        style_id=style_id, gsw_status=payload.status, actor=actor)


# ==========================================================================
# BILL OF MATERIALS
# ==========================================================================

@router.get(
    "/{style_id}/components",
    response_model=List[ComponentRead],
    summary="Components linked to a style",
)
def list_components_by_style(
    style_id: UUID,
    service: ComponentService = Depends(get_component_service)
):
    return service.list_by_style(style_id)


@router.get("/{style_id}/links", response_model=List[LinkRead], summary="Links of a style")
def list_style_links(
    style_id: UUID,
    include_superseded: bool = Query(False),
    service: LinkService = Depends(get_link_service)
):
    return service.list_links(style_id, include_superseded=include_superseded)


@router.post(
    "/{style_id}/links",
    response_model=LinkRead,
    summary="Link a component",
)
def link_component(
    style_id: UUID,
    payload: LinkCreate,
    actor: str = Depends(get_actor),
    service: LinkService = Depends(get_link_service)
):
    """
    Attaches a component to the style.

    If the component already holds a passing, unexpired base test on another
    style, the link is approved immediately and inherits that evidence.
    Linking the same pair again returns the existing link.
    """
    return service.link(
        style_id=style_id, component_id=payload.component_id, actor=actor, renew=payload.renew)


@router.delete(
    "/{style_id}/links/{component_id}",
    response_model=LinkRead,
    summary="Unlink a component",
    description="Only allowed while the style is at 'base'. The link is kept as history.",
)
def unlink_component(
    style_id: UUID,
    component_id: UUID,
    actor: str = Depends(get_actor),
    service: LinkService = Depends(get_link_service)
):
    return service.unlink(style_id=style_id, component_id=component_id, actor=actor)


@router.get(
    "/{style_id}/tests",
    response_model=List[ComponentTestRead],
    summary="Tests recorded for a style",
)
def get_tests_by_style(
    style_id: UUID,
    level: Optional[TestLevel] = Query(None),
    service: TestLedgerService = Depends(get_test_ledger_service)
):
    return service.get_tests_by_style(style_id, level=level)


@router.get(
    "/{style_id}/compliance-summary",
    response_model=ComplianceSummaryRead,
    summary="Compliance summary of a style",
)
def get_compliance_summary(
    style_id: UUID,
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.get_compliance_summary(style_id)
