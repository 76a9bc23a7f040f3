from typing import List, Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field

from app.db.schema import (
    SlaStatus, RiskLevel, LinkStatus, StyleStage, GoldSealStatus, Priority
)


class SlaRead(SQLModel):
    """
    Derived, non-authoritative due-date status. Never persisted.
    """
    due_date: datetime
    sla_status: SlaStatus
    days_remaining: int = Field(
        description="Negative when overdue.",
        schema_extra={"example": 3}
    )


class RiskBreakdown(SQLModel):
    test_failure_rate: float = Field(description="0-1, weight 40%.")
    inspection_failure_rate: float = Field(description="0-1, weight 30%.")
    late_delivery_rate: float = Field(description="0-1, weight 20%.")
    compliance_risk: float = Field(description="0-1, weight 10%.")


class RiskScoreRead(SQLModel):
    factory_id: UUID
    risk_score: int = Field(ge=0, le=100, schema_extra={"example": 42})
    risk_level: RiskLevel
    breakdown: RiskBreakdown
    finalized_tests: int
    completed_inspections: int


class ComplianceLinkRow(SQLModel):
    link_id: UUID
    component_id: UUID
    reference_code: str
    tu_status: LinkStatus
    inherited_from_style_id: Optional[UUID] = None
    base_test_expires_at: Optional[datetime] = None
    base_passing: bool
    bulk_passing: bool
    open_tests: int


class ComplianceSummaryRead(SQLModel):
    """
    Dashboard projection of one style's bill of materials.
    """
    style_id: UUID
    stage: StyleStage
    gsw_status: GoldSealStatus
    total_links: int
    approved_links: int
    pending_links: int
    inherited_links: int
    expiring_soon_links: int = Field(
        description="Inherited evidence expiring within the at-risk window.")
    links: List[ComplianceLinkRow] = []


class OpenWorkItem(SQLModel):
    kind: str = Field(schema_extra={"examples": ["test", "inspection"]})
    id: UUID
    style_id: Optional[UUID] = None
    component_id: Optional[UUID] = None
    factory_id: Optional[UUID] = None
    label: str
    priority: Priority
    due_date: datetime
    sla_status: SlaStatus
    days_remaining: int
