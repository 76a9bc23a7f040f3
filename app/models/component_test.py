from typing import List, Optional
from datetime import datetime
from uuid import UUID
from sqlmodel import SQLModel, Field

from app.db.schema import TestLevel, TestStatus, ParameterStatus, Priority


class TestRequestCreate(SQLModel):
    """
    Ask a lab to test a linked component for a style at one level.
    """
    __test__ = False

    component_id: UUID
    style_id: UUID
    level: TestLevel
    due_date: Optional[datetime] = Field(
        default=None,
        description="Defaults to the standard lab turnaround from today."
    )
    priority: Priority = Priority.NORMAL
    lab_name: Optional[str] = None


class AttachmentRef(SQLModel):
    file_name: str
    url: str


class ParameterInput(SQLModel):
    name: str = Field(min_length=1, schema_extra={"examples": ["Tensile Strength"]})
    specification: str = Field(schema_extra={"examples": [">200N"]})
    result: Optional[str] = Field(default=None, schema_extra={"examples": ["245N"]})
    status: ParameterStatus


class TestResultInput(SQLModel):
    """
    Lab result delivery. Finalizes the test; a second delivery is refused.
    """
    __test__ = False

    parameters: List[ParameterInput]
    report_code: Optional[str] = None
    attachments: List[AttachmentRef] = []


class ParameterRead(SQLModel):
    name: str
    specification: str
    result: Optional[str] = None
    status: ParameterStatus


class ComponentTestRead(SQLModel):
    id: UUID
    component_id: UUID
    style_id: UUID
    level: TestLevel
    status: TestStatus
    priority: Priority
    lab_name: Optional[str] = None
    report_code: Optional[str] = None
    due_date: datetime
    test_date: Optional[datetime] = None
    is_passing: bool
    parameters: List[ParameterRead] = []
    attachments: List[AttachmentRef] = []
    created_at: datetime
