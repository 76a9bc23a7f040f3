from typing import List, Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field
from pydantic import model_validator

from app.db.schema import (
    ComponentType, ComponentStatus, FibreType, FabricConstruction, DyeMethod
)


class FibreCompositionInput(SQLModel):
    """
    A single fibre line of a fabric.
    `sustainable` / `recycled` default from the fibre type when omitted.
    """
    fibre_type: FibreType
    percentage: int = Field(
        ge=0,
        le=100,
        schema_extra={"examples": [95]},
        description="Whole-number share of the fabric (0-100)."
    )
    sustainable: Optional[bool] = None
    recycled: Optional[bool] = None


class FibreCompositionRead(SQLModel):
    fibre_type: FibreType
    percentage: int
    sustainable: bool
    recycled: bool


class ComponentBase(SQLModel):
    mill: str = Field(min_length=2, max_length=150)
    origin_country: str = Field(min_length=2, max_length=2)
    reference_code: str = Field(
        min_length=2,
        max_length=50,
        schema_extra={"examples": ["TU-FAB-001"]}
    )
    sustainable: bool = False
    regenerative: bool = False
    reach_compliant: bool = False
    colour: Optional[str] = None


class ComponentCreate(ComponentBase):
    """
    Payload for a new Fabric or Trim. Fabrics may be saved with an
    incomplete composition (draft); approval enforces the 100% rule.
    """
    component_type: ComponentType

    # Fabric
    composition: List[FibreCompositionInput] = []
    construction: Optional[FabricConstruction] = None
    weight_gsm: Optional[int] = Field(default=None, gt=0)
    width_cm: Optional[int] = Field(default=None, gt=0)
    dye_method: Optional[DyeMethod] = None

    # Trim
    trim_type: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None

    @model_validator(mode='after')
    def validate_variant(self) -> 'ComponentCreate':
        if self.component_type == ComponentType.TRIM:
            if self.composition:
                raise ValueError("Trims do not carry a fibre composition.")
            if not self.trim_type:
                raise ValueError("'trim_type' is required for trims.")
        else:
            if self.trim_type or self.size or self.material:
                raise ValueError(
                    "'trim_type', 'size' and 'material' only apply to trims.")
        return self


class ComponentUpdate(SQLModel):
    """
    Partial update. On components already used by an approved link only the
    compliance flags may be switched on.
    """
    mill: Optional[str] = Field(default=None, min_length=2, max_length=150)
    origin_country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    sustainable: Optional[bool] = None
    regenerative: Optional[bool] = None
    reach_compliant: Optional[bool] = None
    colour: Optional[str] = None
    composition: Optional[List[FibreCompositionInput]] = None
    construction: Optional[FabricConstruction] = None
    weight_gsm: Optional[int] = Field(default=None, gt=0)
    width_cm: Optional[int] = Field(default=None, gt=0)
    dye_method: Optional[DyeMethod] = None
    trim_type: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None


class ComponentRead(ComponentBase):
    id: UUID
    component_type: ComponentType
    status: ComponentStatus
    composition: List[FibreCompositionRead] = []
    construction: Optional[FabricConstruction] = None
    weight_gsm: Optional[int] = None
    width_cm: Optional[int] = None
    dye_method: Optional[DyeMethod] = None
    trim_type: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime
