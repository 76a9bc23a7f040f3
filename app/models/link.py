from typing import List, Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field

from app.db.schema import LinkStatus


class LinkCreate(SQLModel):
    """
    Attach a component to a style's bill of materials.
    """
    component_id: UUID
    renew: bool = Field(
        default=False,
        description="Re-run evidence inheritance on an existing pending link."
    )


class LinkRead(SQLModel):
    id: UUID
    style_id: UUID
    component_id: UUID
    tu_status: LinkStatus
    test_id: Optional[UUID] = None
    base_test_copied_from: Optional[UUID] = None
    base_test_copied_at: Optional[datetime] = None
    base_test_expires_at: Optional[datetime] = None
    linked_at: datetime
    linked_by: str
    unlinked_at: Optional[datetime] = None


class ReconcileResult(SQLModel):
    as_of: datetime
    expired_link_ids: List[UUID] = []
