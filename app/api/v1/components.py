from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from app.core.dependencies import (
    get_actor,
    get_component_service,
    get_link_service,
    get_test_ledger_service,
)
from app.db.schema import ComponentType, ComponentStatus
from app.services.component import ComponentService
from app.services.component_test import TestLedgerService
from app.services.link import LinkService

from app.models.component import ComponentCreate, ComponentUpdate, ComponentRead
from app.models.component_test import ComponentTestRead
from app.models.link import LinkRead
from app.models.style import StyleRead

router = APIRouter()


@router.post(
    "/",
    response_model=ComponentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a Fabric or Trim",
)
def create_component(
    payload: ComponentCreate,
    actor: str = Depends(get_actor),
    service: ComponentService = Depends(get_component_service)
):
    """
    Creates a reusable component in 'pending' status.

    - **Fabric**: composition may be incomplete while in draft.
    - **Trim**: requires `trim_type`; carries no composition.
    - **Reference code** must be unique.
    """
    return service.create_component(data=payload, actor=actor)


@router.get(
    "/",
    response_model=List[ComponentRead],
    summary="List components",
)
def list_components(
    component_type: Optional[ComponentType] = Query(None, description="fabric or trim"),
    component_status: Optional[ComponentStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Filter by reference code or mill"),
    service: ComponentService = Depends(get_component_service)
):
    return service.list_components(
        component_type=component_type, component_status=component_status, query=search)


@router.get("/{component_id}", response_model=ComponentRead, summary="Get a component")
def get_component(
    component_id: UUID,
    service: ComponentService = Depends(get_component_service)
):
    return service.read_component(component_id)


@router.patch(
    "/{component_id}",
    response_model=ComponentRead,
    summary="Update a component",
)
def update_component(
    component_id: UUID,
    payload: ComponentUpdate,
    actor: str = Depends(get_actor),
    service: ComponentService = Depends(get_component_service)
):
    """
    Partially updates a component.

    **Constraints:**
    - Components used by an approved style link only accept compliance flags being switched on.
    - Approved fabrics must keep a composition totalling 100%.
    """
    return service.update_component(component_id=component_id, data=payload, actor=actor)


@router.post(
    "/{component_id}/approve",
    response_model=ComponentRead,
    summary="Approve a component",
    description="Fabrics must have a composition totalling exactly 100%.",
)
def approve_component(
    component_id: UUID,
    actor: str = Depends(get_actor),
    service: ComponentService = Depends(get_component_service)
):
    return service.approve_component(component_id=component_id, actor=actor)


@router.post(
    "/{component_id}/reject",
    response_model=ComponentRead,
    summary="Reject a component",
)
def reject_component(
    component_id: UUID,
    actor: str = Depends(get_actor),
    service: ComponentService = Depends(get_component_service)
):
    return service.reject_component(component_id=component_id, actor=actor)


@router.get(
    "/{component_id}/styles",
    response_model=List[StyleRead],
    summary="Styles using this component",
)
def list_styles_using_component(
    component_id: UUID,
    service: ComponentService = Depends(get_component_service)
):
    return service.list_styles_using_component(component_id)


@router.get(
    "/{component_id}/links",
    response_model=List[LinkRead],
    summary="Link history of this component",
    description="Includes superseded links.",
)
def list_component_links(
    component_id: UUID,
    service: LinkService = Depends(get_link_service)
):
    return service.list_links_for_component(component_id)


@router.get(
    "/{component_id}/tests",
    response_model=List[ComponentTestRead],
    summary="Tests of this component across styles",
)
def get_tests_by_component(
    component_id: UUID,
    service: TestLedgerService = Depends(get_test_ledger_service)
):
    return service.get_tests_by_component(component_id)
