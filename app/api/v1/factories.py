from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from app.core.dependencies import get_actor, get_supplier_service
from app.services.supplier import SupplierService
from app.models.supplier import FactoryCreate, FactoryRead

router = APIRouter()


@router.post(
    "/",
    response_model=FactoryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a factory",
)
def create_factory(
    payload: FactoryCreate,
    actor: str = Depends(get_actor),
    service: SupplierService = Depends(get_supplier_service)
):
    return service.create_factory(data=payload, actor=actor)


@router.get("/", response_model=List[FactoryRead], summary="List factories")
def list_factories(
    supplier_id: Optional[UUID] = Query(None),
    service: SupplierService = Depends(get_supplier_service)
):
    return service.list_factories(supplier_id=supplier_id)


@router.get("/{factory_id}", response_model=FactoryRead, summary="Get a factory")
def get_factory(
    factory_id: UUID,
    service: SupplierService = Depends(get_supplier_service)
):
    return service.get_factory(factory_id)
