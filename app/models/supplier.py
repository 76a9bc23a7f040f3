from typing import Optional
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import EmailStr, StringConstraints
from typing_extensions import Annotated

from app.db.schema import CertificateStatus, TechnologistType


class SupplierCreate(SQLModel):
    code: str = Field(min_length=2, max_length=20, schema_extra={"examples": ["TEX-001"]})
    name: str = Field(min_length=2, max_length=150)
    self_approval_level: int = Field(default=0, ge=0, le=3)
    test_expiry_months: Optional[int] = Field(
        default=None,
        ge=1,
        le=36,
        description="Base test reuse window. Omit to use the platform default."
    )


class SupplierRead(SupplierCreate):
    id: UUID


class FactoryCreate(SQLModel):
    supplier_id: UUID
    name: str = Field(min_length=2, max_length=150)
    country: str = Field(min_length=2, max_length=2)
    on_time_delivery_pct: float = Field(default=100.0, ge=0, le=100)
    certificate_status: CertificateStatus = CertificateStatus.COMPLIANT


class FactoryRead(FactoryCreate):
    id: UUID


class TechnologistCreate(SQLModel):
    name: str = Field(min_length=2, max_length=100)
    email: Annotated[EmailStr, StringConstraints(to_lower=True)]
    type: TechnologistType


class TechnologistRead(SQLModel):
    id: UUID
    name: str
    email: str
    type: TechnologistType
