from typing import Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field

from app.db.schema import (
    InspectionType, InspectionStatus, InspectionOutcome, Priority
)


class InspectionCreate(SQLModel):
    factory_id: UUID
    style_id: Optional[UUID] = None
    inspection_type: InspectionType
    scheduled_date: datetime
    priority: Priority = Priority.NORMAL
    inspector: Optional[str] = None


class InspectionOutcomeInput(SQLModel):
    """
    Final AQL outcome. Completing an inspection is a one-time event.
    """
    result: InspectionOutcome
    sample_size: int = Field(default=0, ge=0)
    critical_defects: int = Field(default=0, ge=0)
    major_defects: int = Field(default=0, ge=0)
    minor_defects: int = Field(default=0, ge=0)


class InspectionRead(SQLModel):
    id: UUID
    factory_id: UUID
    style_id: Optional[UUID] = None
    inspection_type: InspectionType
    status: InspectionStatus
    result: Optional[InspectionOutcome] = None
    priority: Priority
    scheduled_date: datetime
    completed_at: Optional[datetime] = None
    sample_size: int
    critical_defects: int
    major_defects: int
    minor_defects: int
    inspector: Optional[str] = None
