from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid
from sqlmodel import SQLModel, Field, Relationship, JSON
from enum import Enum
from sqlalchemy import DateTime, Index, text

from app.utils.clock import utc_now


class ComponentType(str, Enum):
    FABRIC = "fabric"
    TRIM = "trim"


class ComponentStatus(str, Enum):
    PENDING = "pending"    # Draft; composition may be incomplete
    APPROVED = "approved"
    REJECTED = "rejected"  # Never deleted, so historical links stay resolvable


class FibreType(str, Enum):
    COTTON = "cotton"
    ORGANIC_COTTON = "organic_cotton"
    BCI_COTTON = "bci_cotton"
    POLYESTER = "polyester"
    RECYCLED_POLYESTER = "recycled_polyester"
    NYLON = "nylon"
    RECYCLED_NYLON = "recycled_nylon"
    VISCOSE = "viscose"
    TENCEL = "tencel"
    MODAL = "modal"
    LINEN = "linen"
    SILK = "silk"
    WOOL = "wool"
    CASHMERE = "cashmere"
    ELASTANE = "elastane"
    SPANDEX = "spandex"
    OTHER = "other"


SUSTAINABLE_FIBRES = {
    FibreType.ORGANIC_COTTON,
    FibreType.BCI_COTTON,
    FibreType.RECYCLED_POLYESTER,
    FibreType.RECYCLED_NYLON,
    FibreType.TENCEL,
    FibreType.MODAL,
    FibreType.LINEN,
}


class FabricConstruction(str, Enum):
    JERSEY = "jersey"
    INTERLOCK = "interlock"
    RIB = "rib"
    FLEECE = "fleece"
    FRENCH_TERRY = "french_terry"
    TWILL = "twill"
    POPLIN = "poplin"
    DENIM = "denim"
    CANVAS = "canvas"
    SATIN = "satin"
    CHIFFON = "chiffon"
    VOILE = "voile"
    OTHER = "other"


class DyeMethod(str, Enum):
    PIECE_DYED = "piece_dyed"
    YARN_DYED = "yarn_dyed"
    GARMENT_DYED = "garment_dyed"
    PRINTED = "printed"
    RAW = "raw"
    OTHER = "other"


class StyleStage(str, Enum):
    BASE = "base"
    BASE_APPROVED = "base_approved"
    BULK = "bulk"
    BULK_APPROVED = "bulk_approved"
    PRODUCT = "product"
    PRODUCT_APPROVED = "product_approved"  # Gold Seal, terminal


STAGE_ORDER: List[StyleStage] = [
    StyleStage.BASE,
    StyleStage.BASE_APPROVED,
    StyleStage.BULK,
    StyleStage.BULK_APPROVED,
    StyleStage.PRODUCT,
    StyleStage.PRODUCT_APPROVED,
]


class StyleStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    DEACTIVATED = "deactivated"
    CANCELLED = "cancelled"


class GoldSealStatus(str, Enum):
    NOT_STARTED = "not_started"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class LinkStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class TestLevel(str, Enum):
    BASE = "base"
    BULK = "bulk"
    GARMENT = "garment"


class TestStatus(str, Enum):
    SUBMITTED = "submitted"  # Open request, waiting for the lab
    TESTED = "tested"        # Finalized, immutable


class ParameterStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class Priority(str, Enum):
    URGENT = "urgent"  # Rush
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class SlaStatus(str, Enum):
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    OVERDUE = "overdue"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CertificateStatus(str, Enum):
    COMPLIANT = "compliant"
    PENDING_AUDIT = "pending_audit"
    AT_RISK = "at_risk"
    NON_COMPLIANT = "non_compliant"


class TechnologistType(str, Enum):
    FABRIC = "fabric"
    GARMENT = "garment"


class InspectionType(str, Enum):
    PRE_PRODUCTION = "pre_production"
    DURING_PRODUCTION = "during_production"
    FINAL_RANDOM = "final_random"
    CONTAINER_LOADING = "container_loading"
    FACTORY_AUDIT = "factory_audit"


class InspectionStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InspectionOutcome(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    APPROVE = "approve"
    REJECT = "reject"
    LINK = "link"
    UNLINK = "unlink"
    EXPIRE = "expire"
    REQUEST_TEST = "request_test"
    RECORD_RESULT = "record_result"
    ADVANCE = "advance"
    GOLD_SEAL = "gold_seal"
    INSPECTION = "inspection"


class TimestampMixin(SQLModel):
    """
    Standard audit timestamps (naive UTC) for every persisted record.
    """
    created_at: datetime = Field(
        sa_type=DateTime,
        default_factory=utc_now,
        description="UTC timestamp when this record was first persisted. Example: '2025-01-10 09:00:00'"
    )
    updated_at: datetime = Field(
        sa_type=DateTime,
        default_factory=utc_now,
        sa_column_kwargs={"onupdate": utc_now},
        description="UTC timestamp of the last modification. Updates automatically."
    )


# ==========================================================================
# EXTERNAL COLLABORATORS
# ==========================================================================

class Supplier(TimestampMixin, SQLModel, table=True):
    """
    A vendor producing styles. Provides the test validity window used when
    base-test evidence is inherited between styles.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(
        unique=True,
        index=True,
        description="Short supplier code. Example: 'TEX-001'"
    )
    name: str = Field(description="Example: 'Textile Excellence Ltd'")
    self_approval_level: int = Field(
        default=0,
        ge=0,
        le=3,
        description="0=None, 1=Bronze, 2=Silver, 3=Gold."
    )
    test_expiry_months: Optional[int] = Field(
        default=None,
        description="How long a base test stays valid for reuse. Null means the platform default (6)."
    )

    factories: List["Factory"] = Relationship(back_populates="supplier")


class Factory(TimestampMixin, SQLModel, table=True):
    """
    A production site of a Supplier. Carries the externally-sourced inputs
    of the risk score (delivery performance, certificate status).
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    supplier_id: uuid.UUID = Field(foreign_key="supplier.id", index=True)
    name: str = Field(description="Example: 'Dhaka Knit Unit 2'")
    country: str = Field(description="ISO 2-letter country code. Example: 'BD'")
    on_time_delivery_pct: float = Field(
        default=100.0,
        ge=0,
        le=100,
        description="Share of orders delivered on time, 0-100."
    )
    certificate_status: CertificateStatus = Field(
        default=CertificateStatus.COMPLIANT,
        description="Compliance/certificate standing of the site."
    )

    supplier: Supplier = Relationship(back_populates="factories")


class Technologist(TimestampMixin, SQLModel, table=True):
    """
    A named, accountable reviewer. Styles reference technologists; they do
    not own them.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    type: TechnologistType


# ==========================================================================
# COMPONENTS
# ==========================================================================

class Component(TimestampMixin, SQLModel, table=True):
    """
    A reusable material record (Fabric or Trim), independent of any product.
    Variant-specific columns are null for the other variant. Components are
    never deleted; rejection is a status.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    component_type: ComponentType = Field(index=True)

    # Provenance
    mill: str = Field(description="Example: 'Jiangsu Textiles Co'")
    origin_country: str = Field(description="ISO 2-letter code. Example: 'CN'")
    reference_code: str = Field(
        unique=True,
        index=True,
        description="Catalogue reference. Example: 'TU-FAB-001'"
    )

    # Compliance flags
    sustainable: bool = Field(default=False)
    regenerative: bool = Field(default=False)
    reach_compliant: bool = Field(default=False)

    status: ComponentStatus = Field(default=ComponentStatus.PENDING, index=True)
    created_by: str = Field(default="system")

    # Fabric
    construction: Optional[FabricConstruction] = Field(default=None)
    weight_gsm: Optional[int] = Field(default=None, description="g/m2")
    width_cm: Optional[int] = Field(default=None)
    dye_method: Optional[DyeMethod] = Field(default=None)

    # Shared by both variants
    colour: Optional[str] = Field(default=None)

    # Trim
    trim_type: Optional[str] = Field(default=None, description="Example: 'Zipper'")
    size: Optional[str] = Field(default=None, description="Example: '60cm'")
    material: Optional[str] = Field(default=None, description="Example: 'Metal'")

    composition: List["FibreComposition"] = Relationship(
        back_populates="component",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "FibreComposition.position",
        }
    )


class FibreComposition(SQLModel, table=True):
    """
    One fibre line of a Fabric. Percentages are whole numbers; the set must
    total exactly 100 before the fabric may leave 'pending'.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    component_id: uuid.UUID = Field(foreign_key="component.id", index=True)
    position: int = Field(default=0, description="Display order within the fabric.")
    fibre_type: FibreType
    percentage: int
    sustainable: bool = Field(default=False)
    recycled: bool = Field(default=False)

    component: Component = Relationship(back_populates="composition")


# ==========================================================================
# STYLES
# ==========================================================================

class Style(TimestampMixin, SQLModel, table=True):
    """
    A product progressing through the six-stage approval pipeline.
    `stage` is written only by the lifecycle service.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tu_style_no: str = Field(
        unique=True,
        index=True,
        description="9-digit style number. Example: '123456789'"
    )
    description: str = Field(description="Example: 'Boys Navy Jersey Tee'")
    season: Optional[str] = Field(default=None, description="Example: 'SS25'")
    division: Optional[str] = Field(default=None, description="Example: 'childrens'")

    # Provenance
    supplier_id: uuid.UUID = Field(foreign_key="supplier.id", index=True)
    factory_id: uuid.UUID = Field(foreign_key="factory.id", index=True)
    country_of_origin: str

    stage: StyleStage = Field(default=StyleStage.BASE, index=True)
    status: StyleStatus = Field(default=StyleStatus.PENDING)

    # Accountable roles (references only)
    fabric_tech_id: uuid.UUID = Field(foreign_key="technologist.id")
    garment_tech_id: uuid.UUID = Field(foreign_key="technologist.id")

    # Milestones
    fabric_cut_date: Optional[datetime] = Field(default=None, sa_type=DateTime)
    gold_seal_date: Optional[datetime] = Field(default=None, sa_type=DateTime)
    base_approval_required: Optional[datetime] = Field(default=None, sa_type=DateTime)

    # Gold Seal Workbook (external sign-off)
    gsw_status: GoldSealStatus = Field(default=GoldSealStatus.NOT_STARTED)
    gsw_version: int = Field(default=0)
    gsw_submitted_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    gsw_approved_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    created_by: str = Field(default="system")


class StyleComponentLink(TimestampMixin, SQLModel, table=True):
    """
    The N:M join between Style and Component, with its own lifecycle.
    Carries per-style compliance status and, when base-test evidence was
    inherited from another style, the provenance and expiry of that copy.
    Rows are never deleted; an unlink supersedes the row.
    """
    __table_args__ = (
        # One active link per pair; superseded rows are history
        Index(
            "uq_active_style_component",
            "style_id",
            "component_id",
            unique=True,
            sqlite_where=text("unlinked_at IS NULL"),
            postgresql_where=text("unlinked_at IS NULL"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    style_id: uuid.UUID = Field(foreign_key="style.id", index=True)
    component_id: uuid.UUID = Field(foreign_key="component.id", index=True)

    tu_status: LinkStatus = Field(default=LinkStatus.PENDING, index=True)
    test_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="componenttest.id",
        description="The style's own passing BASE test, once recorded."
    )

    # Inheritance metadata (kept after expiry for audit)
    base_test_copied_from: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="style.id",
        description="Style whose base test this link inherited."
    )
    base_test_copied_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    base_test_expires_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)

    linked_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
    linked_by: str = Field(default="system")
    unlinked_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    unlinked_by: Optional[str] = Field(default=None)


# ==========================================================================
# TEST LEDGER
# ==========================================================================

class ComponentTest(TimestampMixin, SQLModel, table=True):
    """
    One test of a component for a style at a testing level.
    Immutable once 'tested'; corrections create a new record.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    component_id: uuid.UUID = Field(foreign_key="component.id", index=True)
    style_id: uuid.UUID = Field(foreign_key="style.id", index=True)
    level: TestLevel = Field(index=True)
    status: TestStatus = Field(default=TestStatus.SUBMITTED, index=True)
    priority: Priority = Field(default=Priority.NORMAL)

    lab_name: Optional[str] = Field(default=None, description="Example: 'SGS Hong Kong'")
    report_code: Optional[str] = Field(default=None, description="Example: 'SGS-2025-001234'")

    due_date: datetime = Field(sa_type=DateTime)
    test_date: Optional[datetime] = Field(default=None, sa_type=DateTime)

    attachments: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_type=JSON,
        description="Opaque references to lab reports. Example: [{'file_name': 'report.pdf', 'url': '/attachments/r1.pdf'}]"
    )

    requested_by: str = Field(default="system")
    recorded_by: Optional[str] = Field(default=None)

    parameters: List["TestParameter"] = Relationship(
        back_populates="test",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "TestParameter.position",
        }
    )


class TestParameter(SQLModel, table=True):
    """One row of a lab score grid."""
    __test__ = False  # not a pytest class

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    test_id: uuid.UUID = Field(foreign_key="componenttest.id", index=True)
    position: int = Field(default=0)
    name: str = Field(description="Example: 'Tensile Strength'")
    specification: str = Field(description="Example: '>200N'")
    result: Optional[str] = Field(default=None, description="Example: '245N'")
    status: ParameterStatus

    test: ComponentTest = Relationship(back_populates="parameters")


# ==========================================================================
# INSPECTIONS
# ==========================================================================

class Inspection(TimestampMixin, SQLModel, table=True):
    """
    A factory inspection. Outcome is PASS/FAIL only and immutable once the
    inspection is completed.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    factory_id: uuid.UUID = Field(foreign_key="factory.id", index=True)
    style_id: Optional[uuid.UUID] = Field(default=None, foreign_key="style.id")
    inspection_type: InspectionType
    status: InspectionStatus = Field(default=InspectionStatus.SCHEDULED, index=True)
    result: Optional[InspectionOutcome] = Field(default=None)
    priority: Priority = Field(default=Priority.NORMAL)
    scheduled_date: datetime = Field(sa_type=DateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    sample_size: int = Field(default=0)
    critical_defects: int = Field(default=0)
    major_defects: int = Field(default=0)
    minor_defects: int = Field(default=0)
    inspector: Optional[str] = Field(default=None)


# ==========================================================================
# AUDIT
# ==========================================================================

class AuditLogEntry(SQLModel, table=True):
    """
    Who did what to which record. Written in the same transaction as the
    change it describes.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    actor: str = Field(index=True)
    entity_type: str = Field(index=True)
    entity_id: uuid.UUID = Field(index=True)
    action: AuditAction
    changes: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    timestamp: datetime = Field(default_factory=utc_now, sa_type=DateTime)
