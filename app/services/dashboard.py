from datetime import datetime, timedelta
from typing import List, Optional
import uuid
from sqlmodel import Session, select

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.db.schema import (
    Style, Factory, Component, ComponentTest, StyleComponentLink, Inspection,
    TestStatus, TestLevel, LinkStatus, InspectionStatus, InspectionOutcome,
    Priority
)
from app.models.dashboard import (
    SlaRead, RiskScoreRead, RiskBreakdown, ComplianceSummaryRead,
    ComplianceLinkRow, OpenWorkItem
)
from app.services.component_test import is_test_passing, has_passing_evidence
from app.services.inspection import InspectionService
from app.services.sla import (
    sla_status, days_remaining, risk_score, risk_level, COMPLIANCE_RISK
)
from app.utils.clock import utc_now, as_utc_naive


class DashboardService:
    """
    Read-only projections for dashboards. Everything here is computed on
    request from the ledger; nothing is written.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_sla_status(
        self,
        due_date: datetime,
        priority: Priority = Priority.NORMAL,
        now: Optional[datetime] = None,
    ) -> SlaRead:
        now = now or utc_now()
        due_date = as_utc_naive(due_date)
        return SlaRead(
            due_date=due_date,
            sla_status=sla_status(due_date, now, priority),
            days_remaining=days_remaining(due_date, now),
        )

    def get_risk_score(self, factory_id: uuid.UUID) -> RiskScoreRead:
        """
        Weighted factory risk from test failures (40%), inspection failures
        (30%), late delivery (20%) and certificate standing (10%).
        A factory with no finalized tests or inspections scores 0 on that input.
        """
        factory = self.session.get(Factory, factory_id)
        if not factory:
            raise NotFoundError("Factory", factory_id)

        tests = self.session.exec(
            select(ComponentTest)
            .join(Style, Style.id == ComponentTest.style_id)
            .where(
                Style.factory_id == factory_id,
                ComponentTest.status == TestStatus.TESTED,
            )
        ).all()
        failed_tests = sum(1 for t in tests if not is_test_passing(t))
        test_failure_rate = failed_tests / len(tests) if tests else 0.0

        inspections = self.session.exec(
            select(Inspection).where(
                Inspection.factory_id == factory_id,
                Inspection.status == InspectionStatus.COMPLETED,
            )
        ).all()
        failed_inspections = sum(1 for i in inspections if i.result == InspectionOutcome.FAIL)
        inspection_failure_rate = failed_inspections / len(inspections) if inspections else 0.0

        score = risk_score(
            test_failure_rate,
            inspection_failure_rate,
            factory.on_time_delivery_pct,
            factory.certificate_status,
        )

        return RiskScoreRead(
            factory_id=factory.id,
            risk_score=score,
            risk_level=risk_level(score),
            breakdown=RiskBreakdown(
                test_failure_rate=test_failure_rate,
                inspection_failure_rate=inspection_failure_rate,
                late_delivery_rate=1 - factory.on_time_delivery_pct / 100,
                compliance_risk=COMPLIANCE_RISK[factory.certificate_status],
            ),
            finalized_tests=len(tests),
            completed_inspections=len(inspections),
        )

    def get_compliance_summary(
        self, style_id: uuid.UUID, now: Optional[datetime] = None
    ) -> ComplianceSummaryRead:
        now = now or utc_now()
        style = self.session.get(Style, style_id)
        if not style:
            raise NotFoundError("Style", style_id)

        rows = self.session.exec(
            select(StyleComponentLink, Component)
            .join(Component, Component.id == StyleComponentLink.component_id)
            .where(
                StyleComponentLink.style_id == style_id,
                StyleComponentLink.unlinked_at == None,  # noqa: E711
            )
            .order_by(StyleComponentLink.linked_at.asc())
        ).all()

        warning_window = now + timedelta(days=settings.sla_at_risk_days)
        link_rows: List[ComplianceLinkRow] = []
        expiring_soon = 0

        for link, component in rows:
            open_tests = self.session.exec(
                select(ComponentTest.id).where(
                    ComponentTest.component_id == component.id,
                    ComponentTest.style_id == style_id,
                    ComponentTest.status == TestStatus.SUBMITTED,
                )
            ).all()

            inherited_only = link.base_test_copied_from is not None and link.test_id is None
            if (
                inherited_only
                and link.base_test_expires_at
                and now <= link.base_test_expires_at <= warning_window
            ):
                expiring_soon += 1

            link_rows.append(ComplianceLinkRow(
                link_id=link.id,
                component_id=component.id,
                reference_code=component.reference_code,
                tu_status=link.tu_status,
                inherited_from_style_id=link.base_test_copied_from,
                base_test_expires_at=link.base_test_expires_at,
                base_passing=has_passing_evidence(
                    self.session, component.id, style_id, TestLevel.BASE, now),
                bulk_passing=has_passing_evidence(
                    self.session, component.id, style_id, TestLevel.BULK, now),
                open_tests=len(open_tests),
            ))

        approved = sum(1 for r in link_rows if r.tu_status == LinkStatus.APPROVED)
        return ComplianceSummaryRead(
            style_id=style.id,
            stage=style.stage,
            gsw_status=style.gsw_status,
            total_links=len(link_rows),
            approved_links=approved,
            pending_links=len(link_rows) - approved,
            inherited_links=sum(1 for r in link_rows if r.inherited_from_style_id),
            expiring_soon_links=expiring_soon,
            links=link_rows,
        )

    def list_open_work(self, now: Optional[datetime] = None) -> List[OpenWorkItem]:
        """Open test requests and scheduled inspections, soonest due first."""
        now = now or utc_now()

        open_tests = self.session.exec(
            select(ComponentTest, Component)
            .join(Component, Component.id == ComponentTest.component_id)
            .where(ComponentTest.status == TestStatus.SUBMITTED)
        ).all()

        items = [
            OpenWorkItem(
                kind="test",
                id=test.id,
                style_id=test.style_id,
                component_id=test.component_id,
                label=f"{component.reference_code} {test.level.value} test",
                priority=test.priority,
                due_date=test.due_date,
                sla_status=sla_status(test.due_date, now, test.priority),
                days_remaining=days_remaining(test.due_date, now),
            )
            for test, component in open_tests
        ]
        items.extend(InspectionService(self.session).list_open_inspections(now))

        return sorted(items, key=lambda item: item.due_date)
