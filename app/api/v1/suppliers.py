from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_actor, get_supplier_service
from app.services.supplier import SupplierService
from app.models.supplier import SupplierCreate, SupplierRead

router = APIRouter()


@router.post(
    "/",
    response_model=SupplierRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a supplier",
)
def create_supplier(
    payload: SupplierCreate,
    actor: str = Depends(get_actor),
    service: SupplierService = Depends(get_supplier_service)
):
    """
    Registers a vendor.

    - **test_expiry_months**: how long a base test stays reusable across
      this supplier's styles. Omit to use the platform default.
    """
    return service.create_supplier(data=payload, actor=actor)


@router.get("/", response_model=List[SupplierRead], summary="List suppliers")
def list_suppliers(service: SupplierService = Depends(get_supplier_service)):
    return service.list_suppliers()


@router.get("/{supplier_id}", response_model=SupplierRead, summary="Get a supplier")
def get_supplier(
    supplier_id: UUID,
    service: SupplierService = Depends(get_supplier_service)
):
    return service.get_supplier(supplier_id)
