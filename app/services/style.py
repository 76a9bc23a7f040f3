from typing import List, Optional
import uuid
from loguru import logger
from sqlmodel import Session, select

from app.core.audit import record_audit
from app.core.exceptions import (
    NotFoundError, DuplicateError, ValidationError, InvariantError
)
from app.core.locks import style_lock
from app.db.schema import (
    Style, StyleStage, Supplier, Factory, Technologist, TechnologistType,
    StyleComponentLink, GoldSealStatus, AuditAction
)
from app.models.style import StyleCreate, StyleRead, StageRead
from app.utils.clock import utc_now


def to_style_read(session: Session, style: Style) -> StyleRead:
    component_ids = session.exec(
        select(StyleComponentLink.component_id)
        .where(
            StyleComponentLink.style_id == style.id,
            StyleComponentLink.unlinked_at == None,  # noqa: E711
        )
        .order_by(StyleComponentLink.linked_at.asc())
    ).all()
    return StyleRead.model_validate(style, update={"component_ids": list(component_ids)})


class StyleService:
    """
    Style Registry. Owns style headers and the Gold Seal Workbook state.
    It never writes `stage`; see LifecycleService.advance.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_style(self, style_id: uuid.UUID) -> Style:
        style = self.session.get(Style, style_id)
        if not style:
            raise NotFoundError("Style", style_id)
        return style

    def read_style(self, style_id: uuid.UUID) -> StyleRead:
        return to_style_read(self.session, self.get_style(style_id))

    def list_styles(
        self,
        stage: Optional[StyleStage] = None,
        supplier_id: Optional[uuid.UUID] = None,
        factory_id: Optional[uuid.UUID] = None,
    ) -> List[StyleRead]:
        statement = select(Style)
        if stage:
            statement = statement.where(Style.stage == stage)
        if supplier_id:
            statement = statement.where(Style.supplier_id == supplier_id)
        if factory_id:
            statement = statement.where(Style.factory_id == factory_id)

        statement = statement.order_by(Style.tu_style_no.asc())
        return [to_style_read(self.session, s) for s in self.session.exec(statement).all()]

    def get_stage(self, style_id: uuid.UUID) -> StageRead:
        style = self.get_style(style_id)
        return StageRead(
            style_id=style.id,
            stage=style.stage,
            is_terminal=style.stage == StyleStage.PRODUCT_APPROVED,
        )

    def _check_technologist(
        self, tech_id: uuid.UUID, expected: TechnologistType, role: str
    ) -> None:
        tech = self.session.get(Technologist, tech_id)
        if not tech:
            raise NotFoundError("Technologist", tech_id)
        if tech.type != expected:
            raise ValidationError(
                f"{role} must be a {expected.value} technologist; '{tech.name}' is {tech.type.value}.")

    def create_style(self, data: StyleCreate, actor: str) -> StyleRead:
        existing = self.session.exec(
            select(Style).where(Style.tu_style_no == data.tu_style_no)
        ).first()
        if existing:
            raise DuplicateError(
                "Style", existing.id, f"Style number '{data.tu_style_no}' already exists.")

        if not self.session.get(Supplier, data.supplier_id):
            raise NotFoundError("Supplier", data.supplier_id)

        factory = self.session.get(Factory, data.factory_id)
        if not factory:
            raise NotFoundError("Factory", data.factory_id)
        if factory.supplier_id != data.supplier_id:
            raise ValidationError(
                f"Factory '{factory.name}' does not belong to the style's supplier.")

        self._check_technologist(
            data.fabric_tech_id, TechnologistType.FABRIC, "Fabric technologist")
        self._check_technologist(
            data.garment_tech_id, TechnologistType.GARMENT, "Garment technologist")

        style = Style(**data.model_dump(), stage=StyleStage.BASE, created_by=actor)

        try:
            self.session.add(style)
            record_audit(
                self.session, actor, "Style", style.id, AuditAction.CREATE,
                changes=data.model_dump(mode='json'),
            )
            self.session.commit()
            self.session.refresh(style)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Style creation failed: {e}")
            raise

        logger.info(f"Style {style.tu_style_no} created at stage 'base'")
        return to_style_read(self.session, style)

    def record_gold_seal_submission(
        self, style_id: uuid.UUID, gsw_status: GoldSealStatus, actor: str
    ) -> StyleRead:
        """
        Applies a Gold Seal Workbook event from the external sign-off process.

        Re-delivery of the current status is a no-op. Each new submission
        bumps `gsw_version`.
        """
        if gsw_status == GoldSealStatus.NOT_STARTED:
            raise ValidationError("A workbook event cannot reset the status to 'not_started'.")

        with style_lock(style_id):
            style = self.get_style(style_id)

            if style.gsw_status == gsw_status:
                return to_style_read(self.session, style)

            if style.stage == StyleStage.PRODUCT_APPROVED:
                raise InvariantError(
                    "gold_seal_final",
                    "Style already holds Gold Seal; its workbook can no longer change."
                )

            previous = style.gsw_status
            now = utc_now()

            if gsw_status == GoldSealStatus.SUBMITTED or previous in (
                GoldSealStatus.NOT_STARTED, GoldSealStatus.REJECTED
            ):
                style.gsw_version += 1
                style.gsw_submitted_at = now

            style.gsw_status = gsw_status
            style.gsw_approved_at = now if gsw_status == GoldSealStatus.APPROVED else None

            try:
                self.session.add(style)
                record_audit(
                    self.session, actor, "Style", style.id, AuditAction.GOLD_SEAL,
                    changes={
                        "gsw_status": {"old": previous, "new": gsw_status},
                        "gsw_version": style.gsw_version,
                    },
                )
                self.session.commit()
                self.session.refresh(style)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Gold Seal submission failed: {e}")
                raise

            logger.info(
                f"Style {style.tu_style_no} workbook v{style.gsw_version} -> {gsw_status.value}")
            return to_style_read(self.session, style)
