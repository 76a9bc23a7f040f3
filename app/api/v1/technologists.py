from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query

from app.core.dependencies import get_actor, get_supplier_service
from app.db.schema import TechnologistType
from app.services.supplier import SupplierService
from app.models.supplier import TechnologistCreate, TechnologistRead

router = APIRouter()


@router.post(
    "/",
    response_model=TechnologistRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a technologist",
)
def create_technologist(
    payload: TechnologistCreate,
    actor: str = Depends(get_actor),
    service: SupplierService = Depends(get_supplier_service)
):
    return service.create_technologist(data=payload, actor=actor)


@router.get("/", response_model=List[TechnologistRead], summary="List technologists")
def list_technologists(
    tech_type: Optional[TechnologistType] = Query(None, alias="type"),
    service: SupplierService = Depends(get_supplier_service)
):
    return service.list_technologists(tech_type=tech_type)
