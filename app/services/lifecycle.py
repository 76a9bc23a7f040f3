from datetime import datetime
from typing import List, Optional, Set, Tuple
import uuid
from loguru import logger
from sqlmodel import Session, select

from app.core.audit import record_audit
from app.core.exceptions import NotFoundError, GuardError, CompositionError
from app.core.locks import style_lock
from app.db.schema import (
    Style, StyleStage, STAGE_ORDER, StyleComponentLink, Component,
    ComponentType, ComponentStatus, GoldSealStatus, TestLevel, AuditAction
)
from app.models.style import StageAdvanceRead
from app.services.component_test import has_passing_evidence
from app.services.composition import validate_composition
from app.services.link import LinkService
from app.utils.clock import utc_now


Failures = Tuple[Set[uuid.UUID], List[str]]


class LifecycleService:
    """
    The six-stage approval pipeline:

        base -> base_approved -> bulk -> bulk_approved -> product -> product_approved

    Stages move one step at a time and never back. `advance` is the only
    code path that writes `Style.stage`.
    """

    def __init__(self, session: Session):
        self.session = session

    def _active_links(self, style_id: uuid.UUID) -> List[Tuple[StyleComponentLink, Component]]:
        statement = (
            select(StyleComponentLink, Component)
            .join(Component, Component.id == StyleComponentLink.component_id)
            .where(
                StyleComponentLink.style_id == style_id,
                StyleComponentLink.unlinked_at == None,  # noqa: E711
            )
            .order_by(StyleComponentLink.linked_at.asc())
        )
        return list(self.session.exec(statement).all())

    def _evidence_failures(
        self, style: Style, level: TestLevel, now: datetime
    ) -> Failures:
        failing: Set[uuid.UUID] = set()
        reasons: List[str] = []

        for link, component in self._active_links(style.id):
            ref = component.reference_code

            if component.status == ComponentStatus.REJECTED:
                failing.add(component.id)
                reasons.append(f"{ref}: component is rejected")
                continue

            if level == TestLevel.BASE and component.component_type == ComponentType.FABRIC:
                try:
                    validate_composition(component.composition, component.id)
                except CompositionError as e:
                    failing.add(component.id)
                    reasons.append(f"{ref}: {e.message}")

            if not has_passing_evidence(self.session, component.id, style.id, level, now):
                failing.add(component.id)
                reasons.append(f"{ref}: {level.value} test missing, failing or expired")

        return failing, reasons

    def evaluate_guard(
        self, style: Style, to_stage: StyleStage, now: datetime
    ) -> Failures:
        """Returns the components (and human reasons) blocking `to_stage`."""
        if to_stage == StyleStage.BASE_APPROVED:
            return self._evidence_failures(style, TestLevel.BASE, now)

        if to_stage == StyleStage.BULK_APPROVED:
            return self._evidence_failures(style, TestLevel.BULK, now)

        if to_stage == StyleStage.PRODUCT_APPROVED:
            # Evidence may have expired since the earlier gates
            base_failing, base_reasons = self._evidence_failures(style, TestLevel.BASE, now)
            bulk_failing, bulk_reasons = self._evidence_failures(style, TestLevel.BULK, now)
            reasons = base_reasons + bulk_reasons
            if style.gsw_status != GoldSealStatus.APPROVED:
                reasons.insert(
                    0, f"Gold Seal Workbook is '{style.gsw_status.value}', approval required")
            return base_failing | bulk_failing, reasons

        # base_approved -> bulk and bulk_approved -> product are planning steps
        return set(), []

    def advance(
        self,
        style_id: uuid.UUID,
        actor: str,
        now: Optional[datetime] = None,
    ) -> StageAdvanceRead:
        """
        Moves a style one stage forward if the edge's guard holds.

        Expired inherited evidence is reconciled first. At Gold Seal this is
        a no-op. Raises GuardError listing every blocking component.
        """
        now = now or utc_now()

        with style_lock(style_id):
            style = self.session.get(Style, style_id)
            if not style:
                raise NotFoundError("Style", style_id)

            current = style.stage
            if current == StyleStage.PRODUCT_APPROVED:
                return StageAdvanceRead(
                    style_id=style.id, previous_stage=current, stage=current, changed=False)

            LinkService(self.session).reconcile_expirations(
                as_of=now, style_id=style_id, actor=actor)
            self.session.refresh(style)

            target = STAGE_ORDER[STAGE_ORDER.index(current) + 1]
            failing, reasons = self.evaluate_guard(style, target, now)

            if failing or reasons:
                logger.warning(
                    f"Guard refused {style.tu_style_no} {current.value} -> {target.value}: "
                    f"{len(failing)} failing component(s)")
                raise GuardError(style.id, current.value, target.value, failing, reasons)

            style.stage = target

            try:
                self.session.add(style)
                record_audit(
                    self.session, actor, "Style", style.id, AuditAction.ADVANCE,
                    changes={"stage": {"old": current, "new": target}},
                )
                self.session.commit()
                self.session.refresh(style)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Advancing style {style_id} failed: {e}")
                raise

            logger.info(f"Style {style.tu_style_no} advanced {current.value} -> {target.value}")
            return StageAdvanceRead(
                style_id=style.id, previous_stage=current, stage=target, changed=True)
