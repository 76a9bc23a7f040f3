from datetime import datetime, timedelta
from typing import List, Optional
import uuid
from loguru import logger
from sqlmodel import Session, select

from app.core.audit import record_audit
from app.core.config import settings
from app.core.exceptions import (
    NotFoundError, DuplicateError, AlreadyFinalizedError, InvariantError,
    ValidationError
)
from app.core.locks import style_lock
from app.db.schema import (
    Component, Style, StyleComponentLink, ComponentTest, TestParameter,
    TestLevel, TestStatus, ParameterStatus, LinkStatus, AuditAction
)
from app.models.component_test import (
    TestRequestCreate, TestResultInput, ComponentTestRead
)
from app.utils.clock import utc_now, as_utc_naive


# ==========================================================================
# EVIDENCE RULES
# ==========================================================================

def is_test_passing(test: ComponentTest) -> bool:
    """A test passes iff it is finalized and every parameter passed."""
    return (
        test.status == TestStatus.TESTED
        and len(test.parameters) > 0
        and all(p.status == ParameterStatus.PASS for p in test.parameters)
    )


def latest_finalized_test(
    session: Session,
    component_id: uuid.UUID,
    style_id: uuid.UUID,
    level: TestLevel,
) -> Optional[ComponentTest]:
    statement = (
        select(ComponentTest)
        .where(
            ComponentTest.component_id == component_id,
            ComponentTest.style_id == style_id,
            ComponentTest.level == level,
            ComponentTest.status == TestStatus.TESTED,
        )
        .order_by(ComponentTest.test_date.desc(), ComponentTest.created_at.desc())
    )
    return session.exec(statement).first()


def active_link(
    session: Session, style_id: uuid.UUID, component_id: uuid.UUID
) -> Optional[StyleComponentLink]:
    statement = select(StyleComponentLink).where(
        StyleComponentLink.style_id == style_id,
        StyleComponentLink.component_id == component_id,
        StyleComponentLink.unlinked_at == None,  # noqa: E711
    )
    return session.exec(statement).first()


def has_passing_evidence(
    session: Session,
    component_id: uuid.UUID,
    style_id: uuid.UUID,
    level: TestLevel,
    now: datetime,
) -> bool:
    """
    Whether (component, style) holds valid evidence at `level`.

    The style's own latest finalized test decides when one exists. At base
    level only, a link without its own result may lean on the base test of
    the style it inherited from, until the link's expiry passes.
    """
    own = latest_finalized_test(session, component_id, style_id, level)
    if own is not None:
        return is_test_passing(own)

    if level != TestLevel.BASE:
        return False

    link = active_link(session, style_id, component_id)
    if not link or not link.base_test_copied_from or not link.base_test_expires_at:
        return False
    if now > link.base_test_expires_at:
        return False

    donor_test = latest_finalized_test(
        session, component_id, link.base_test_copied_from, TestLevel.BASE)
    return donor_test is not None and is_test_passing(donor_test)


def to_test_read(test: ComponentTest) -> ComponentTestRead:
    return ComponentTestRead.model_validate(
        test, update={"is_passing": is_test_passing(test)})


# ==========================================================================
# SERVICE
# ==========================================================================

class TestLedgerService:
    """
    Owns ComponentTest records: one per component x style x level request.
    Finalized tests are immutable; a correction is a new request.
    """
    __test__ = False

    def __init__(self, session: Session):
        self.session = session

    def get_test(self, test_id: uuid.UUID) -> ComponentTest:
        test = self.session.get(ComponentTest, test_id)
        if not test:
            raise NotFoundError("ComponentTest", test_id)
        return test

    def read_test(self, test_id: uuid.UUID) -> ComponentTestRead:
        return to_test_read(self.get_test(test_id))

    def request_test(
        self,
        data: TestRequestCreate,
        actor: str,
        now: Optional[datetime] = None,
    ) -> ComponentTestRead:
        now = now or utc_now()

        with style_lock(data.style_id):
            if not self.session.get(Style, data.style_id):
                raise NotFoundError("Style", data.style_id)
            component = self.session.get(Component, data.component_id)
            if not component:
                raise NotFoundError("Component", data.component_id)

            if not active_link(self.session, data.style_id, data.component_id):
                raise InvariantError(
                    "component_not_linked",
                    f"Component {component.reference_code} is not linked to this style."
                )

            open_request = self.session.exec(
                select(ComponentTest).where(
                    ComponentTest.component_id == data.component_id,
                    ComponentTest.style_id == data.style_id,
                    ComponentTest.level == data.level,
                    ComponentTest.status == TestStatus.SUBMITTED,
                )
            ).first()
            if open_request:
                raise DuplicateError(
                    "ComponentTest",
                    open_request.id,
                    f"An open {data.level.value} test already exists for this component and style."
                )

            test = ComponentTest(
                component_id=data.component_id,
                style_id=data.style_id,
                level=data.level,
                status=TestStatus.SUBMITTED,
                priority=data.priority,
                lab_name=data.lab_name,
                due_date=as_utc_naive(data.due_date) or now + timedelta(days=settings.default_test_turnaround_days),
                requested_by=actor,
            )

            try:
                self.session.add(test)
                record_audit(
                    self.session, actor, "ComponentTest", test.id, AuditAction.REQUEST_TEST,
                    changes=data.model_dump(mode='json'),
                )
                self.session.commit()
                self.session.refresh(test)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Test request failed: {e}")
                raise

            logger.info(
                f"{test.level.value} test requested for {component.reference_code} "
                f"(style {test.style_id}, due {test.due_date:%Y-%m-%d})")
            return to_test_read(test)

    def record_result(
        self,
        test_id: uuid.UUID,
        data: TestResultInput,
        actor: str,
        now: Optional[datetime] = None,
    ) -> ComponentTestRead:
        """
        Finalizes a test with the lab's score grid.

        Duplicate delivery raises AlreadyFinalizedError and leaves the stored
        parameters untouched. A base result also settles the link's status
        for that style.
        """
        now = now or utc_now()
        test = self.get_test(test_id)

        with style_lock(test.style_id):
            self.session.refresh(test)
            if test.status == TestStatus.TESTED:
                logger.warning(f"Duplicate result delivery for finalized test {test.id}")
                raise AlreadyFinalizedError("ComponentTest", test.id)

            if not data.parameters:
                raise ValidationError("A test result needs at least one parameter.")

            test.parameters = [
                TestParameter(
                    position=position,
                    name=p.name,
                    specification=p.specification,
                    result=p.result,
                    status=p.status,
                )
                for position, p in enumerate(data.parameters)
            ]
            test.status = TestStatus.TESTED
            test.test_date = now
            test.recorded_by = actor
            if data.report_code:
                test.report_code = data.report_code
            test.attachments = [a.model_dump() for a in data.attachments]

            passing = is_test_passing(test)

            try:
                self.session.add(test)
                record_audit(
                    self.session, actor, "ComponentTest", test.id, AuditAction.RECORD_RESULT,
                    changes={"passing": passing, "parameters": len(test.parameters)},
                )

                if test.level == TestLevel.BASE:
                    self._settle_link(test, passing, actor)

                self.session.commit()
                self.session.refresh(test)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Recording result for test {test_id} failed: {e}")
                raise

            logger.info(
                f"Test {test.id} finalized ({test.level.value}): {'PASS' if passing else 'FAIL'}")
            return to_test_read(test)

    def _settle_link(self, test: ComponentTest, passing: bool, actor: str) -> None:
        link = active_link(self.session, test.style_id, test.component_id)
        if not link:
            return

        previous = link.tu_status
        link.test_id = test.id if passing else None
        link.tu_status = LinkStatus.APPROVED if passing else LinkStatus.PENDING
        self.session.add(link)

        if previous != link.tu_status:
            record_audit(
                self.session, actor, "StyleComponentLink", link.id, AuditAction.UPDATE,
                changes={"tu_status": {"old": previous, "new": link.tu_status},
                         "test_id": link.test_id},
            )

    def is_passing(
        self,
        component_id: uuid.UUID,
        style_id: uuid.UUID,
        level: TestLevel,
        now: Optional[datetime] = None,
    ) -> bool:
        return has_passing_evidence(
            self.session, component_id, style_id, level, now or utc_now())

    def get_tests_by_component(self, component_id: uuid.UUID) -> List[ComponentTestRead]:
        if not self.session.get(Component, component_id):
            raise NotFoundError("Component", component_id)

        statement = (
            select(ComponentTest)
            .where(ComponentTest.component_id == component_id)
            .order_by(ComponentTest.created_at.asc())
        )
        return [to_test_read(t) for t in self.session.exec(statement).all()]

    def get_tests_by_style(
        self, style_id: uuid.UUID, level: Optional[TestLevel] = None
    ) -> List[ComponentTestRead]:
        if not self.session.get(Style, style_id):
            raise NotFoundError("Style", style_id)

        statement = select(ComponentTest).where(ComponentTest.style_id == style_id)
        if level:
            statement = statement.where(ComponentTest.level == level)

        statement = statement.order_by(ComponentTest.created_at.asc())
        return [to_test_read(t) for t in self.session.exec(statement).all()]
