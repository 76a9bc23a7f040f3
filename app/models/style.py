from typing import List, Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field

from app.db.schema import StyleStage, StyleStatus, GoldSealStatus


class StyleCreate(SQLModel):
    """
    Payload for a new product record. Every style starts at stage 'base'.
    """
    tu_style_no: str = Field(
        schema_extra={"pattern": r"^\d{9}$", "examples": ["123456789"]},
        description="9-digit style number."
    )
    description: str = Field(min_length=2, max_length=200)
    season: Optional[str] = None
    division: Optional[str] = None
    supplier_id: UUID
    factory_id: UUID
    country_of_origin: str = Field(min_length=2, max_length=2)
    fabric_tech_id: UUID
    garment_tech_id: UUID
    fabric_cut_date: Optional[datetime] = None
    gold_seal_date: Optional[datetime] = None
    base_approval_required: Optional[datetime] = None


class StyleRead(SQLModel):
    id: UUID
    tu_style_no: str
    description: str
    season: Optional[str] = None
    division: Optional[str] = None
    supplier_id: UUID
    factory_id: UUID
    country_of_origin: str
    stage: StyleStage
    status: StyleStatus
    fabric_tech_id: UUID
    garment_tech_id: UUID
    fabric_cut_date: Optional[datetime] = None
    gold_seal_date: Optional[datetime] = None
    base_approval_required: Optional[datetime] = None
    gsw_status: GoldSealStatus
    gsw_version: int
    component_ids: List[UUID] = Field(
        default=[],
        description="Active linked components, in link order."
    )
    created_at: datetime
    updated_at: datetime


class StageRead(SQLModel):
    style_id: UUID
    stage: StyleStage
    is_terminal: bool


class StageAdvanceRead(SQLModel):
    style_id: UUID
    previous_stage: StyleStage
    stage: StyleStage
    changed: bool = Field(
        description="False when the style was already at Gold Seal.")


class GoldSealSubmission(SQLModel):
    """
    Workbook event delivered by the external sign-off process.
    """
    status: GoldSealStatus = Field(
        schema_extra={"examples": ["approved"]}
    )
