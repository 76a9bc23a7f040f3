from datetime import datetime
from typing import List, Optional, Tuple
import uuid
from loguru import logger
from sqlalchemy import update
from sqlmodel import Session, select, col

from app.core.audit import record_audit
from app.core.exceptions import NotFoundError, InvariantError
from app.core.locks import style_lock
from app.db.schema import (
    Component, ComponentStatus, Style, StyleStage, StyleComponentLink,
    ComponentTest, TestStatus, TestLevel, LinkStatus, AuditAction
)
from app.models.link import LinkRead, ReconcileResult
from app.services.component_test import active_link, is_test_passing, latest_finalized_test
from app.services.supplier import SupplierService
from app.utils.clock import utc_now, add_months, as_utc_naive


def to_link_read(link: StyleComponentLink) -> LinkRead:
    return LinkRead.model_validate(link)


class LinkService:
    """
    Link Manager: owns the Style <-> Component join and the base-test
    inheritance rule ("update once, comply everywhere").

    A component already proven at base level for one style is linked to a
    new style as approved, carrying a copy of that evidence that expires
    after the supplier's test validity window. Links are superseded on
    unlink, never deleted.
    """

    def __init__(self, session: Session):
        self.session = session
        self.suppliers = SupplierService(session)

    def _get_style(self, style_id: uuid.UUID) -> Style:
        style = self.session.get(Style, style_id)
        if not style:
            raise NotFoundError("Style", style_id)
        return style

    def find_donor(
        self,
        component_id: uuid.UUID,
        exclude_style_id: uuid.UUID,
        now: datetime,
    ) -> Optional[Tuple[StyleComponentLink, ComponentTest]]:
        """
        Most recent approved link of `component_id` on another style that
        holds its own passing, unexpired base test.

        Links that themselves inherited their evidence are not donors.
        """
        statement = (
            select(StyleComponentLink, ComponentTest)
            .join(ComponentTest, ComponentTest.id == StyleComponentLink.test_id)
            .where(
                StyleComponentLink.component_id == component_id,
                StyleComponentLink.style_id != exclude_style_id,
                StyleComponentLink.tu_status == LinkStatus.APPROVED,
                StyleComponentLink.unlinked_at == None,  # noqa: E711
                ComponentTest.status == TestStatus.TESTED,
            )
            .order_by(col(ComponentTest.test_date).desc())
        )

        for link, test in self.session.exec(statement).all():
            if not is_test_passing(test):
                continue
            donor_style = self.session.get(Style, link.style_id)
            months = self.suppliers.resolve_expiry_months(donor_style.supplier_id)
            if add_months(test.test_date, months) >= now:
                return link, test
        return None

    def _apply_inheritance(
        self,
        link: StyleComponentLink,
        donor: StyleComponentLink,
        style: Style,
        now: datetime,
    ) -> None:
        months = self.suppliers.resolve_expiry_months(style.supplier_id)
        link.tu_status = LinkStatus.APPROVED
        link.base_test_copied_from = donor.style_id
        link.base_test_copied_at = now
        link.base_test_expires_at = add_months(now, months)

    def _apply_own_result(self, link: StyleComponentLink, test: ComponentTest) -> None:
        passing = is_test_passing(test)
        link.test_id = test.id if passing else None
        link.tu_status = LinkStatus.APPROVED if passing else LinkStatus.PENDING

    def link(
        self,
        style_id: uuid.UUID,
        component_id: uuid.UUID,
        actor: str,
        renew: bool = False,
        now: Optional[datetime] = None,
    ) -> LinkRead:
        """
        Attaches a component to a style. Idempotent per pair: an existing
        active link is returned as-is, unless `renew` asks to re-run
        inheritance on a link that has fallen back to pending.

        When the style already holds a finalized base test for the component
        (e.g. a relink after unlink), that result sets the status and no
        donor is consulted.
        """
        now = now or utc_now()

        with style_lock(style_id):
            style = self._get_style(style_id)
            component = self.session.get(Component, component_id)
            if not component:
                raise NotFoundError("Component", component_id)

            existing = active_link(self.session, style_id, component_id)
            if existing:
                if renew and existing.tu_status == LinkStatus.PENDING:
                    return self._renew(existing, style, actor, now)
                logger.debug(
                    f"Link {style.tu_style_no}/{component.reference_code} already exists")
                return to_link_read(existing)

            if component.status == ComponentStatus.REJECTED:
                raise InvariantError(
                    "rejected_component",
                    f"Component {component.reference_code} is rejected and cannot be linked."
                )

            link = StyleComponentLink(
                style_id=style_id,
                component_id=component_id,
                tu_status=LinkStatus.PENDING,
                linked_at=now,
                linked_by=actor,
            )

            # The style's own base result outranks any donor
            donor = None
            own = latest_finalized_test(self.session, component_id, style_id, TestLevel.BASE)
            if own is not None:
                self._apply_own_result(link, own)
            else:
                donor = self.find_donor(component_id, style_id, now)
                if donor:
                    self._apply_inheritance(link, donor[0], style, now)

            try:
                self.session.add(link)
                record_audit(
                    self.session, actor, "StyleComponentLink", link.id, AuditAction.LINK,
                    changes={
                        "style_id": style_id,
                        "component_id": component_id,
                        "tu_status": link.tu_status,
                        "base_test_copied_from": link.base_test_copied_from,
                        "base_test_expires_at": link.base_test_expires_at,
                    },
                )
                self.session.commit()
                self.session.refresh(link)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Linking {component_id} to {style_id} failed: {e}")
                raise

            if own is not None:
                logger.info(
                    f"Linked {component.reference_code} to {style.tu_style_no}: own base test "
                    f"{own.id} applies, link {link.tu_status.value}")
            elif donor:
                logger.info(
                    f"Linked {component.reference_code} to {style.tu_style_no}: inherited base "
                    f"test from style {donor[0].style_id}, expires {link.base_test_expires_at:%Y-%m-%d}")
            else:
                logger.info(
                    f"Linked {component.reference_code} to {style.tu_style_no}: fresh testing required")
            return to_link_read(link)

    def _renew(
        self, link: StyleComponentLink, style: Style, actor: str, now: datetime
    ) -> LinkRead:
        # A failed own base test needs a retest, not a borrowed result
        if latest_finalized_test(self.session, link.component_id, style.id, TestLevel.BASE):
            logger.debug(f"Link {link.id} not renewed: style holds its own base result")
            return to_link_read(link)

        donor = self.find_donor(link.component_id, style.id, now)
        if not donor:
            return to_link_read(link)

        self._apply_inheritance(link, donor[0], style, now)

        try:
            self.session.add(link)
            record_audit(
                self.session, actor, "StyleComponentLink", link.id, AuditAction.LINK,
                changes={
                    "renewed": True,
                    "base_test_copied_from": link.base_test_copied_from,
                    "base_test_expires_at": link.base_test_expires_at,
                },
            )
            self.session.commit()
            self.session.refresh(link)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Renewing link {link.id} failed: {e}")
            raise

        logger.info(f"Link {link.id} renewed until {link.base_test_expires_at:%Y-%m-%d}")
        return to_link_read(link)

    def unlink(
        self, style_id: uuid.UUID, component_id: uuid.UUID, actor: str
    ) -> LinkRead:
        """
        Removes a component from the bill of materials while the style is
        still at 'base'. The row is kept and marked as superseded.
        """
        with style_lock(style_id):
            style = self._get_style(style_id)

            if style.stage != StyleStage.BASE:
                logger.warning(
                    f"Refused unlink on {style.tu_style_no}: style is at '{style.stage.value}'")
                raise InvariantError(
                    "unlink_after_base",
                    f"Style is at '{style.stage.value}'; components can only be unlinked at 'base'."
                )

            link = active_link(self.session, style_id, component_id)
            if not link:
                raise NotFoundError("StyleComponentLink", f"{style_id}/{component_id}")

            link.unlinked_at = utc_now()
            link.unlinked_by = actor

            try:
                self.session.add(link)
                record_audit(
                    self.session, actor, "StyleComponentLink", link.id, AuditAction.UNLINK,
                    changes={"style_id": style_id, "component_id": component_id},
                )
                self.session.commit()
                self.session.refresh(link)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Unlinking {component_id} from {style_id} failed: {e}")
                raise

            logger.info(f"Unlinked component {component_id} from {style.tu_style_no}")
            return to_link_read(link)

    def reconcile_expirations(
        self,
        as_of: Optional[datetime] = None,
        style_id: Optional[uuid.UUID] = None,
        actor: str = "system",
    ) -> ReconcileResult:
        """
        Downgrades links whose inherited base evidence has expired.

        Each downgrade is a compare-and-swap on `tu_status`: a link that was
        renewed or received its own passing test since the scan is left
        alone. Inheritance metadata is kept. Running it twice is a no-op.
        """
        as_of = as_utc_naive(as_of) or utc_now()

        candidates = select(StyleComponentLink.id).where(
            StyleComponentLink.tu_status == LinkStatus.APPROVED,
            StyleComponentLink.base_test_expires_at != None,  # noqa: E711
            StyleComponentLink.base_test_expires_at < as_of,
            StyleComponentLink.test_id == None,  # noqa: E711
        )
        if style_id:
            candidates = candidates.where(StyleComponentLink.style_id == style_id)

        expired: List[uuid.UUID] = []

        try:
            for link_id in self.session.exec(candidates).all():
                result = self.session.connection().execute(
                    update(StyleComponentLink)
                    .where(
                        StyleComponentLink.id == link_id,
                        StyleComponentLink.tu_status == LinkStatus.APPROVED,
                        StyleComponentLink.base_test_expires_at < as_of,
                        StyleComponentLink.test_id == None,  # noqa: E711
                    )
                    .values(tu_status=LinkStatus.PENDING, updated_at=utc_now())
                )
                if result.rowcount == 1:
                    expired.append(link_id)
                    record_audit(
                        self.session, actor, "StyleComponentLink", link_id, AuditAction.EXPIRE,
                        changes={"tu_status": {"old": LinkStatus.APPROVED, "new": LinkStatus.PENDING},
                                 "as_of": as_of},
                    )

            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Expiry reconciliation failed: {e}")
            raise

        # Bulk UPDATE bypasses the identity map
        self.session.expire_all()

        if expired:
            logger.info(f"Reconciled expirations as of {as_of:%Y-%m-%d %H:%M}: {len(expired)} link(s) downgraded")
        return ReconcileResult(as_of=as_of, expired_link_ids=expired)

    def list_links(
        self, style_id: uuid.UUID, include_superseded: bool = False
    ) -> List[LinkRead]:
        self._get_style(style_id)

        statement = select(StyleComponentLink).where(StyleComponentLink.style_id == style_id)
        if not include_superseded:
            statement = statement.where(StyleComponentLink.unlinked_at == None)  # noqa: E711

        statement = statement.order_by(StyleComponentLink.linked_at.asc())
        return [to_link_read(link) for link in self.session.exec(statement).all()]

    def list_links_for_component(self, component_id: uuid.UUID) -> List[LinkRead]:
        if not self.session.get(Component, component_id):
            raise NotFoundError("Component", component_id)

        statement = (
            select(StyleComponentLink)
            .where(StyleComponentLink.component_id == component_id)
            .order_by(StyleComponentLink.linked_at.asc())
        )
        return [to_link_read(link) for link in self.session.exec(statement).all()]
