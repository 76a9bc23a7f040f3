from datetime import datetime
from typing import List, Optional
import uuid
from loguru import logger
from sqlmodel import Session, select

from app.core.audit import record_audit
from app.core.exceptions import NotFoundError, AlreadyFinalizedError, InvariantError
from app.db.schema import (
    Inspection, InspectionStatus, Factory, Style, AuditAction
)
from app.models.dashboard import OpenWorkItem
from app.models.inspection import InspectionCreate, InspectionOutcomeInput
from app.services.sla import sla_status, days_remaining
from app.utils.clock import utc_now, as_utc_naive


def to_open_work_item(inspection: Inspection, now: datetime) -> OpenWorkItem:
    return OpenWorkItem(
        kind="inspection",
        id=inspection.id,
        style_id=inspection.style_id,
        factory_id=inspection.factory_id,
        label=f"{inspection.inspection_type.value.replace('_', ' ')} inspection",
        priority=inspection.priority,
        due_date=inspection.scheduled_date,
        sla_status=sla_status(inspection.scheduled_date, now, inspection.priority),
        days_remaining=days_remaining(inspection.scheduled_date, now),
    )


class InspectionService:
    """
    Factory inspections. Outcomes are PASS/FAIL and final once recorded;
    completed inspections feed the factory risk score.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_inspection(self, inspection_id: uuid.UUID) -> Inspection:
        inspection = self.session.get(Inspection, inspection_id)
        if not inspection:
            raise NotFoundError("Inspection", inspection_id)
        return inspection

    def schedule_inspection(self, data: InspectionCreate, actor: str) -> Inspection:
        if not self.session.get(Factory, data.factory_id):
            raise NotFoundError("Factory", data.factory_id)
        if data.style_id and not self.session.get(Style, data.style_id):
            raise NotFoundError("Style", data.style_id)

        inspection = Inspection(**data.model_dump(), status=InspectionStatus.SCHEDULED)
        inspection.scheduled_date = as_utc_naive(inspection.scheduled_date)

        try:
            self.session.add(inspection)
            record_audit(
                self.session, actor, "Inspection", inspection.id, AuditAction.CREATE,
                changes=data.model_dump(mode='json'),
            )
            self.session.commit()
            self.session.refresh(inspection)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Scheduling inspection failed: {e}")
            raise

        logger.info(
            f"{inspection.inspection_type.value} inspection scheduled for "
            f"{inspection.scheduled_date:%Y-%m-%d}")
        return inspection

    def record_outcome(
        self,
        inspection_id: uuid.UUID,
        data: InspectionOutcomeInput,
        actor: str,
        now: Optional[datetime] = None,
    ) -> Inspection:
        """Completes a scheduled inspection. A second outcome is refused."""
        inspection = self.get_inspection(inspection_id)

        if inspection.status == InspectionStatus.COMPLETED:
            raise AlreadyFinalizedError("Inspection", inspection.id)
        if inspection.status == InspectionStatus.CANCELLED:
            raise InvariantError(
                "inspection_cancelled", "A cancelled inspection cannot record an outcome.")

        for key, value in data.model_dump().items():
            setattr(inspection, key, value)
        inspection.status = InspectionStatus.COMPLETED
        inspection.completed_at = now or utc_now()

        try:
            self.session.add(inspection)
            record_audit(
                self.session, actor, "Inspection", inspection.id, AuditAction.INSPECTION,
                changes=data.model_dump(mode='json'),
            )
            self.session.commit()
            self.session.refresh(inspection)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Recording inspection outcome failed: {e}")
            raise

        logger.info(f"Inspection {inspection.id} completed: {inspection.result.value.upper()}")
        return inspection

    def cancel_inspection(self, inspection_id: uuid.UUID, actor: str) -> Inspection:
        inspection = self.get_inspection(inspection_id)

        if inspection.status == InspectionStatus.COMPLETED:
            raise AlreadyFinalizedError("Inspection", inspection.id)
        if inspection.status == InspectionStatus.CANCELLED:
            return inspection

        inspection.status = InspectionStatus.CANCELLED

        try:
            self.session.add(inspection)
            record_audit(
                self.session, actor, "Inspection", inspection.id, AuditAction.UPDATE,
                changes={"status": InspectionStatus.CANCELLED},
            )
            self.session.commit()
            self.session.refresh(inspection)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Cancelling inspection {inspection_id} failed: {e}")
            raise

        return inspection

    def list_inspections(
        self,
        factory_id: Optional[uuid.UUID] = None,
        inspection_status: Optional[InspectionStatus] = None,
    ) -> List[Inspection]:
        statement = select(Inspection)
        if factory_id:
            statement = statement.where(Inspection.factory_id == factory_id)
        if inspection_status:
            statement = statement.where(Inspection.status == inspection_status)
        return self.session.exec(statement.order_by(Inspection.scheduled_date.asc())).all()

    def list_open_inspections(self, now: Optional[datetime] = None) -> List[OpenWorkItem]:
        now = now or utc_now()
        scheduled = self.list_inspections(inspection_status=InspectionStatus.SCHEDULED)
        return [to_open_work_item(i, now) for i in scheduled]
