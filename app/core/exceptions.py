"""
Business error taxonomy for the compliance engine.

Every error carries enough structured data for a caller to render an
actionable message. The API layer maps them to HTTP responses in
`app.main`; services never raise HTTPException for business rules.
"""
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import uuid


class ComplianceError(Exception):
    status_code: int = 400
    kind: str = "compliance_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def detail(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.detail()}


class ValidationError(ComplianceError):
    status_code = 422
    kind = "validation_error"


class CompositionErrorKind(str, Enum):
    EMPTY = "empty"
    INCOMPLETE = "incomplete"
    OVERFLOW = "overflow"
    OUT_OF_RANGE = "out_of_range"


class CompositionError(ValidationError):
    """Fibre composition does not add up to exactly 100%."""
    kind = "composition_error"

    def __init__(
        self,
        error_kind: CompositionErrorKind,
        total: int,
        component_id: Optional[uuid.UUID] = None,
    ):
        messages = {
            CompositionErrorKind.EMPTY: "Composition has no fibre entries.",
            CompositionErrorKind.INCOMPLETE: f"Composition totals {total}%, expected exactly 100%.",
            CompositionErrorKind.OVERFLOW: f"Composition totals {total}%, expected exactly 100%.",
            CompositionErrorKind.OUT_OF_RANGE: "Each fibre percentage must be between 0 and 100.",
        }
        super().__init__(messages[error_kind])
        self.error_kind = error_kind
        self.total = total
        self.component_id = component_id

    def detail(self) -> Dict[str, Any]:
        return {
            "composition_error": self.error_kind.value,
            "total": self.total,
            "component_id": str(self.component_id) if self.component_id else None,
        }


class NotFoundError(ComplianceError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} '{entity_id}' not found.")
        self.entity = entity
        self.entity_id = entity_id

    def detail(self) -> Dict[str, Any]:
        return {"entity": self.entity, "entity_id": str(self.entity_id)}


class DuplicateError(ComplianceError):
    status_code = 409
    kind = "duplicate"

    def __init__(self, entity: str, existing_id: Any, message: Optional[str] = None):
        super().__init__(message or f"{entity} already exists ('{existing_id}').")
        self.entity = entity
        self.existing_id = existing_id

    def detail(self) -> Dict[str, Any]:
        return {"entity": self.entity, "existing_id": str(self.existing_id)}


class AlreadyFinalizedError(ComplianceError):
    status_code = 409
    kind = "already_finalized"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} '{entity_id}' is finalized and cannot be modified.")
        self.entity = entity
        self.entity_id = entity_id

    def detail(self) -> Dict[str, Any]:
        return {"entity": self.entity, "entity_id": str(self.entity_id)}


class InvariantError(ComplianceError):
    status_code = 409
    kind = "invariant_violation"

    def __init__(self, rule: str, message: str):
        super().__init__(message)
        self.rule = rule

    def detail(self) -> Dict[str, Any]:
        return {"rule": self.rule}


class GuardError(ComplianceError):
    """A stage transition precondition is not met."""
    status_code = 409
    kind = "guard_failed"

    def __init__(
        self,
        style_id: uuid.UUID,
        from_stage: str,
        to_stage: str,
        failing_component_ids: Iterable[uuid.UUID],
        reasons: Optional[List[str]] = None,
    ):
        self.style_id = style_id
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.failing_component_ids = sorted(set(failing_component_ids), key=str)
        self.reasons = reasons or []
        super().__init__(
            f"Cannot advance style from '{from_stage}' to '{to_stage}': "
            f"{len(self.failing_component_ids)} component(s) lack valid evidence."
        )

    def detail(self) -> Dict[str, Any]:
        return {
            "style_id": str(self.style_id),
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "failing_component_ids": [str(c) for c in self.failing_component_ids],
            "reasons": self.reasons,
        }
