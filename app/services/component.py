from typing import List, Optional
import uuid
from loguru import logger
from sqlmodel import Session, select, or_, col

from app.core.audit import record_audit
from app.core.exceptions import (
    NotFoundError, DuplicateError, InvariantError, ValidationError
)
from app.db.schema import (
    Component, ComponentType, ComponentStatus, FibreComposition, Style,
    StyleComponentLink, LinkStatus, AuditAction
)
from app.models.component import (
    ComponentCreate, ComponentUpdate, ComponentRead, FibreCompositionInput
)
from app.models.style import StyleRead
from app.services.composition import validate_composition, default_fibre_flags


COMPLIANCE_FLAGS = {"sustainable", "regenerative", "reach_compliant"}
FABRIC_FIELDS = {"composition", "construction", "weight_gsm", "width_cm", "dye_method"}
TRIM_FIELDS = {"trim_type", "size", "material"}
REQUIRED_FIELDS = {"mill", "origin_country", "composition"} | COMPLIANCE_FLAGS


def to_component_read(component: Component) -> ComponentRead:
    return ComponentRead.model_validate(component)


def _build_composition(entries: List[FibreCompositionInput]) -> List[FibreComposition]:
    lines = []
    for position, entry in enumerate(entries):
        sustainable, recycled = default_fibre_flags(
            entry.fibre_type, entry.sustainable, entry.recycled)
        lines.append(FibreComposition(
            position=position,
            fibre_type=entry.fibre_type,
            percentage=entry.percentage,
            sustainable=sustainable,
            recycled=recycled,
        ))
    return lines


class ComponentService:
    """
    Component Registry: owns Fabric and Trim records.
    Components are never deleted; rejection is a status.
    """

    def __init__(self, session: Session):
        self.session = session

    # ==========================================================================
    # LOOKUPS
    # ==========================================================================

    def get_component(self, component_id: uuid.UUID) -> Component:
        component = self.session.get(Component, component_id)
        if not component:
            raise NotFoundError("Component", component_id)
        return component

    def read_component(self, component_id: uuid.UUID) -> ComponentRead:
        return to_component_read(self.get_component(component_id))

    def list_components(
        self,
        component_type: Optional[ComponentType] = None,
        component_status: Optional[ComponentStatus] = None,
        query: Optional[str] = None,
    ) -> List[ComponentRead]:
        statement = select(Component)

        if component_type:
            statement = statement.where(Component.component_type == component_type)
        if component_status:
            statement = statement.where(Component.status == component_status)
        if query:
            search_fmt = f"%{query}%"
            statement = statement.where(
                or_(
                    col(Component.reference_code).ilike(search_fmt),
                    col(Component.mill).ilike(search_fmt)
                )
            )

        statement = statement.order_by(Component.reference_code.asc())
        return [to_component_read(c) for c in self.session.exec(statement).all()]

    def list_by_style(self, style_id: uuid.UUID) -> List[ComponentRead]:
        """
        Bill of materials of a style, in link order.
        Joins through StyleComponentLink; superseded links are ignored.
        """
        if not self.session.get(Style, style_id):
            raise NotFoundError("Style", style_id)

        statement = (
            select(Component)
            .join(StyleComponentLink, StyleComponentLink.component_id == Component.id)
            .where(
                StyleComponentLink.style_id == style_id,
                StyleComponentLink.unlinked_at == None,  # noqa: E711
            )
            .order_by(StyleComponentLink.linked_at.asc())
        )
        return [to_component_read(c) for c in self.session.exec(statement).all()]

    def list_styles_using_component(self, component_id: uuid.UUID) -> List[StyleRead]:
        """Every style currently carrying this component (reuse view)."""
        from app.services.style import to_style_read

        self.get_component(component_id)

        statement = (
            select(Style)
            .join(StyleComponentLink, StyleComponentLink.style_id == Style.id)
            .where(
                StyleComponentLink.component_id == component_id,
                StyleComponentLink.unlinked_at == None,  # noqa: E711
            )
            .order_by(Style.tu_style_no.asc())
        )
        return [to_style_read(self.session, s) for s in self.session.exec(statement).all()]

    def _has_approved_link(self, component_id: uuid.UUID) -> bool:
        statement = select(StyleComponentLink.id).where(
            StyleComponentLink.component_id == component_id,
            StyleComponentLink.tu_status == LinkStatus.APPROVED,
            StyleComponentLink.unlinked_at == None,  # noqa: E711
        )
        return self.session.exec(statement).first() is not None

    # ==========================================================================
    # MUTATIONS
    # ==========================================================================

    def create_component(self, data: ComponentCreate, actor: str) -> ComponentRead:
        """
        Registers a draft component (status 'pending').
        Fabric compositions are not validated here; approval does that.
        """
        existing = self.session.exec(
            select(Component).where(Component.reference_code == data.reference_code)
        ).first()
        if existing:
            raise DuplicateError(
                "Component",
                existing.id,
                f"Reference code '{data.reference_code}' already exists in the catalogue."
            )

        component = Component(
            **data.model_dump(exclude={"composition"}),
            status=ComponentStatus.PENDING,
            created_by=actor,
        )
        component.composition = _build_composition(data.composition)

        try:
            self.session.add(component)
            record_audit(
                self.session, actor, "Component", component.id, AuditAction.CREATE,
                changes=data.model_dump(mode='json'),
            )
            self.session.commit()
            self.session.refresh(component)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Component creation failed: {e}")
            raise

        logger.info(
            f"Component {component.reference_code} created ({component.component_type.value})")
        return to_component_read(component)

    def update_component(
        self, component_id: uuid.UUID, data: ComponentUpdate, actor: str
    ) -> ComponentRead:
        component = self.get_component(component_id)
        patch = data.model_dump(exclude_unset=True)

        if not patch:
            return to_component_read(component)

        cleared = sorted(key for key in REQUIRED_FIELDS if key in patch and patch[key] is None)
        if cleared:
            raise ValidationError(f"Fields {cleared} cannot be cleared.")

        wrong_variant = TRIM_FIELDS if component.component_type == ComponentType.FABRIC else FABRIC_FIELDS
        misplaced = sorted(set(patch) & wrong_variant)
        if misplaced:
            raise ValidationError(
                f"Fields {misplaced} do not apply to a {component.component_type.value}.")

        # Material on a compliant product must not change underneath it
        if self._has_approved_link(component.id):
            only_adds_flags = all(
                key in COMPLIANCE_FLAGS and value is True for key, value in patch.items()
            )
            if not only_adds_flags:
                logger.warning(
                    f"Refused edit of {component.reference_code}: referenced by an approved link")
                raise InvariantError(
                    "approved_component_locked",
                    "Component is used by an approved style link; only compliance flags may be added."
                )

        if "composition" in patch and component.status == ComponentStatus.APPROVED:
            validate_composition(data.composition, component.id)

        old_state = component.model_dump()

        for key, value in patch.items():
            if key == "composition":
                component.composition = _build_composition(data.composition)
            else:
                setattr(component, key, value)

        changes = {
            k: {"old": old_state.get(k), "new": v}
            for k, v in data.model_dump(mode='json', exclude_unset=True).items()
        }

        try:
            self.session.add(component)
            record_audit(
                self.session, actor, "Component", component.id, AuditAction.UPDATE, changes)
            self.session.commit()
            self.session.refresh(component)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Component update failed: {e}")
            raise

        return to_component_read(component)

    def approve_component(self, component_id: uuid.UUID, actor: str) -> ComponentRead:
        """
        Moves a draft to 'approved'. Fabrics must carry a composition that
        totals exactly 100%; trims have no composition check.
        """
        component = self.get_component(component_id)

        if component.status == ComponentStatus.APPROVED:
            return to_component_read(component)
        if component.status == ComponentStatus.REJECTED:
            raise InvariantError(
                "rejected_component",
                f"Component {component.reference_code} was rejected and cannot be approved."
            )

        if component.component_type == ComponentType.FABRIC:
            validate_composition(component.composition, component.id)

        component.status = ComponentStatus.APPROVED

        try:
            self.session.add(component)
            record_audit(
                self.session, actor, "Component", component.id, AuditAction.APPROVE,
                changes={"status": ComponentStatus.APPROVED},
            )
            self.session.commit()
            self.session.refresh(component)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Component approval failed: {e}")
            raise

        logger.info(f"Component {component.reference_code} approved")
        return to_component_read(component)

    def reject_component(self, component_id: uuid.UUID, actor: str) -> ComponentRead:
        component = self.get_component(component_id)

        if component.status == ComponentStatus.REJECTED:
            return to_component_read(component)

        previous = component.status
        component.status = ComponentStatus.REJECTED

        try:
            self.session.add(component)
            record_audit(
                self.session, actor, "Component", component.id, AuditAction.REJECT,
                changes={"status": {"old": previous, "new": ComponentStatus.REJECTED}},
            )
            self.session.commit()
            self.session.refresh(component)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Component rejection failed: {e}")
            raise

        logger.info(f"Component {component.reference_code} rejected")
        return to_component_read(component)
