"""Link manager: idempotent linking, base-test inheritance, expiry and unlink."""
import uuid
from datetime import datetime

import pytest
from sqlmodel import select

from app.core.exceptions import InvariantError, NotFoundError
import app.db.schema as schema
from app.db.schema import (
    AuditAction, AuditLogEntry, ComponentTest, LinkStatus, StyleComponentLink, StyleStage
)
from app.services.component import ComponentService
from app.services.component_test import TestLedgerService
from app.services.lifecycle import LifecycleService
from app.services.link import LinkService

from tests.conftest import ACTOR


@pytest.fixture
def proven(session, now, make_fabric, make_style, record_test):
    """A fabric with a passing base test on a first style, recorded at `now`."""
    fabric = make_fabric()
    donor_style = make_style()
    LinkService(session).link(donor_style.id, fabric.id, ACTOR, now=now)
    record_test(fabric.id, donor_style.id, now)
    return fabric, donor_style


class TestLinkIdempotence:
    def test_linking_twice_returns_same_link(self, session, now, make_fabric, make_style) -> None:
        fabric, style = make_fabric(), make_style()
        service = LinkService(session)

        first = service.link(style.id, fabric.id, ACTOR, now=now)
        second = service.link(style.id, fabric.id, ACTOR, now=now)

        assert first.id == second.id
        rows = session.exec(
            select(StyleComponentLink).where(StyleComponentLink.style_id == style.id)
        ).all()
        assert len(rows) == 1

    def test_unknown_style_or_component(self, session, now, make_fabric, make_style) -> None:
        service = LinkService(session)
        with pytest.raises(NotFoundError):
            service.link(uuid.uuid4(), make_fabric().id, ACTOR, now=now)
        with pytest.raises(NotFoundError):
            service.link(make_style().id, uuid.uuid4(), ACTOR, now=now)

    def test_rejected_component_cannot_be_linked(self, session, now, make_fabric, make_style) -> None:
        fabric = make_fabric()
        ComponentService(session).reject_component(fabric.id, ACTOR)
        with pytest.raises(InvariantError):
            LinkService(session).link(make_style().id, fabric.id, ACTOR, now=now)


class TestInheritance:
    def test_fresh_component_needs_testing(self, session, now, make_fabric, make_style) -> None:
        link = LinkService(session).link(make_style().id, make_fabric().id, ACTOR, now=now)

        assert link.tu_status == LinkStatus.PENDING
        assert link.base_test_copied_from is None
        assert link.base_test_expires_at is None

    def test_proven_component_is_inherited(self, session, now, proven, make_style) -> None:
        fabric, donor_style = proven
        style = make_style()

        link = LinkService(session).link(style.id, fabric.id, ACTOR, now=now)

        assert link.tu_status == LinkStatus.APPROVED
        assert link.base_test_copied_from == donor_style.id
        assert link.base_test_copied_at == now
        assert link.linked_at == now
        assert link.base_test_expires_at == datetime(2025, 9, 3, 9, 0, 0)
        assert link.test_id is None

    def test_no_test_request_created_for_inheritor(self, session, now, proven, make_style) -> None:
        fabric, _ = proven
        style = make_style()
        LinkService(session).link(style.id, fabric.id, ACTOR, now=now)

        tests = session.exec(
            select(ComponentTest).where(ComponentTest.style_id == style.id)
        ).all()
        assert tests == []

    def test_expiry_uses_linking_supplier_window(
        self, session, now, proven, make_style, make_supplier
    ) -> None:
        fabric, _ = proven
        style = make_style(supplier=make_supplier(test_expiry_months=12))

        link = LinkService(session).link(style.id, fabric.id, ACTOR, now=now)
        assert link.base_test_expires_at == datetime(2026, 3, 3, 9, 0, 0)

    def test_unset_supplier_window_defaults_to_six_months(
        self, session, now, proven, make_style, make_supplier
    ) -> None:
        fabric, _ = proven
        style = make_style(supplier=make_supplier(test_expiry_months=None))

        link = LinkService(session).link(style.id, fabric.id, ACTOR, now=now)
        assert link.base_test_expires_at == datetime(2025, 9, 3, 9, 0, 0)

    def test_expiry_clamps_to_month_end(
        self, session, make_fabric, make_style, record_test
    ) -> None:
        at = datetime(2025, 8, 31, 12, 0, 0)
        fabric, donor_style, style = make_fabric(), make_style(), make_style()
        service = LinkService(session)
        service.link(donor_style.id, fabric.id, ACTOR, now=at)
        record_test(fabric.id, donor_style.id, at)

        link = service.link(style.id, fabric.id, ACTOR, now=at)
        assert link.base_test_expires_at == datetime(2026, 2, 28, 12, 0, 0)

    def test_failing_base_test_is_not_inherited(
        self, session, now, make_fabric, make_style, record_test
    ) -> None:
        fabric, donor_style, style = make_fabric(), make_style(), make_style()
        service = LinkService(session)
        service.link(donor_style.id, fabric.id, ACTOR, now=now)
        record_test(fabric.id, donor_style.id, now, statuses=("pass", "fail"))

        link = service.link(style.id, fabric.id, ACTOR, now=now)
        assert link.tu_status == LinkStatus.PENDING
        assert link.base_test_copied_from is None

    def test_stale_donor_test_is_not_inherited(
        self, session, now, make_fabric, make_style, record_test
    ) -> None:
        fabric, donor_style, style = make_fabric(), make_style(), make_style()
        service = LinkService(session)
        tested_at = datetime(2024, 8, 1, 9, 0, 0)
        service.link(donor_style.id, fabric.id, ACTOR, now=tested_at)
        record_test(fabric.id, donor_style.id, tested_at)

        link = service.link(style.id, fabric.id, ACTOR, now=now)
        assert link.tu_status == LinkStatus.PENDING

    def test_inherited_links_are_not_donors(
        self, session, make_fabric, make_style, record_test
    ) -> None:
        fabric = make_fabric()
        first, second, third = make_style(), make_style(), make_style()
        service = LinkService(session)

        t0 = datetime(2025, 1, 10, 9, 0, 0)
        service.link(first.id, fabric.id, ACTOR, now=t0)
        record_test(fabric.id, first.id, t0)

        inherited = service.link(second.id, fabric.id, ACTOR, now=datetime(2025, 6, 10, 9, 0, 0))
        assert inherited.tu_status == LinkStatus.APPROVED

        # first's own test is now past its six months; second only holds a copy
        late = service.link(third.id, fabric.id, ACTOR, now=datetime(2025, 8, 10, 9, 0, 0))
        assert late.tu_status == LinkStatus.PENDING
        assert late.base_test_copied_from is None

    def test_most_recent_donor_wins(
        self, session, now, make_fabric, make_style, record_test
    ) -> None:
        fabric = make_fabric()
        older, newer, style = make_style(), make_style(), make_style()
        service = LinkService(session)

        service.link(older.id, fabric.id, ACTOR, now=datetime(2025, 1, 5))
        record_test(fabric.id, older.id, datetime(2025, 1, 5))
        service.link(newer.id, fabric.id, ACTOR, now=datetime(2025, 2, 20))
        record_test(fabric.id, newer.id, datetime(2025, 2, 20))

        link = service.link(style.id, fabric.id, ACTOR, now=now)
        assert link.base_test_copied_from == newer.id

    def test_link_is_audited(self, session, now, proven, make_style) -> None:
        fabric, donor_style = proven
        link = LinkService(session).link(make_style().id, fabric.id, ACTOR, now=now)

        entry = session.exec(
            select(AuditLogEntry).where(AuditLogEntry.entity_id == link.id)
        ).one()
        assert entry.action == AuditAction.LINK
        assert entry.changes["base_test_copied_from"] == str(donor_style.id)


class TestReconcileExpirations:
    @pytest.fixture
    def inherited(self, session, now, proven, make_style):
        fabric, _ = proven
        style = make_style()
        return LinkService(session).link(style.id, fabric.id, ACTOR, now=now)

    def test_downgrades_after_expiry_and_keeps_history(self, session, inherited) -> None:
        service = LinkService(session)
        result = service.reconcile_expirations(as_of=datetime(2025, 9, 4))

        assert result.expired_link_ids == [inherited.id]
        link = session.get(StyleComponentLink, inherited.id)
        assert link.tu_status == LinkStatus.PENDING
        assert link.base_test_copied_from == inherited.base_test_copied_from
        assert link.base_test_expires_at == inherited.base_test_expires_at

    def test_is_idempotent(self, session, inherited) -> None:
        service = LinkService(session)
        service.reconcile_expirations(as_of=datetime(2025, 9, 4))
        again = service.reconcile_expirations(as_of=datetime(2025, 9, 4))

        assert again.expired_link_ids == []
        assert session.get(StyleComponentLink, inherited.id).tu_status == LinkStatus.PENDING

    def test_nothing_expires_before_deadline(self, session, inherited) -> None:
        result = LinkService(session).reconcile_expirations(as_of=datetime(2025, 9, 3, 9, 0, 0))
        assert result.expired_link_ids == []
        assert session.get(StyleComponentLink, inherited.id).tu_status == LinkStatus.APPROVED

    def test_own_passing_test_keeps_link_approved(self, session, now, inherited, record_test) -> None:
        record_test(inherited.component_id, inherited.style_id, now)

        result = LinkService(session).reconcile_expirations(as_of=datetime(2026, 1, 1))
        assert result.expired_link_ids == []
        assert session.get(StyleComponentLink, inherited.id).tu_status == LinkStatus.APPROVED

    def test_expiry_is_audited(self, session, inherited) -> None:
        LinkService(session).reconcile_expirations(as_of=datetime(2025, 9, 4))
        actions = session.exec(
            select(AuditLogEntry.action).where(AuditLogEntry.entity_id == inherited.id)
        ).all()
        assert AuditAction.EXPIRE in actions

    def test_renewed_link_is_not_downgraded(self, session, proven, inherited, record_test) -> None:
        fabric, donor_style = proven
        service = LinkService(session)
        service.reconcile_expirations(as_of=datetime(2025, 9, 4))

        # Donor retested, then the pending link is renewed in place
        record_test(fabric.id, donor_style.id, datetime(2025, 9, 4))
        renewed = service.link(
            inherited.style_id, fabric.id, ACTOR, renew=True, now=datetime(2025, 9, 4))

        assert renewed.id == inherited.id
        assert renewed.tu_status == LinkStatus.APPROVED
        assert renewed.base_test_expires_at == datetime(2026, 3, 4)

        result = service.reconcile_expirations(as_of=datetime(2025, 9, 5))
        assert result.expired_link_ids == []
        assert session.get(StyleComponentLink, inherited.id).tu_status == LinkStatus.APPROVED

    def test_renew_without_donor_leaves_link_pending(self, session, inherited) -> None:
        service = LinkService(session)
        service.reconcile_expirations(as_of=datetime(2025, 9, 4))

        link = service.link(
            inherited.style_id, inherited.component_id, ACTOR, renew=True, now=datetime(2025, 9, 4))
        assert link.tu_status == LinkStatus.PENDING

    def test_plain_relink_does_not_renew(self, session, proven, inherited, record_test) -> None:
        fabric, donor_style = proven
        service = LinkService(session)
        service.reconcile_expirations(as_of=datetime(2025, 9, 4))
        record_test(fabric.id, donor_style.id, datetime(2025, 9, 4))

        link = service.link(inherited.style_id, fabric.id, ACTOR, now=datetime(2025, 9, 4))
        assert link.tu_status == LinkStatus.PENDING

    def test_renew_does_not_cover_own_failing_result(
        self, session, now, inherited, record_test
    ) -> None:
        record_test(inherited.component_id, inherited.style_id, now, statuses=("fail",))
        service = LinkService(session)
        assert session.get(StyleComponentLink, inherited.id).tu_status == LinkStatus.PENDING

        link = service.link(
            inherited.style_id, inherited.component_id, ACTOR, renew=True, now=now)

        assert link.id == inherited.id
        assert link.tu_status == LinkStatus.PENDING
        assert not TestLedgerService(session).is_passing(
            inherited.component_id, inherited.style_id, schema.TestLevel.BASE, now=now)


class TestUnlink:
    def test_unlink_at_base_supersedes_link(self, session, now, make_fabric, make_style) -> None:
        fabric, style = make_fabric(), make_style()
        service = LinkService(session)
        original = service.link(style.id, fabric.id, ACTOR, now=now)

        removed = service.unlink(style.id, fabric.id, ACTOR)

        assert removed.id == original.id
        assert removed.unlinked_at is not None
        assert service.list_links(style.id) == []
        assert len(service.list_links(style.id, include_superseded=True)) == 1

    def test_relink_after_unlink_creates_new_record(self, session, now, make_fabric, make_style) -> None:
        fabric, style = make_fabric(), make_style()
        service = LinkService(session)
        first = service.link(style.id, fabric.id, ACTOR, now=now)
        service.unlink(style.id, fabric.id, ACTOR)

        second = service.link(style.id, fabric.id, ACTOR, now=now)
        assert second.id != first.id
        assert len(service.list_links_for_component(fabric.id)) == 2

    def test_relink_keeps_own_failing_result_over_donor(
        self, session, now, proven, make_style, record_test
    ) -> None:
        fabric, _ = proven
        style = make_style()
        service = LinkService(session)
        service.link(style.id, fabric.id, ACTOR, now=now)
        record_test(fabric.id, style.id, now, statuses=("fail",))
        service.unlink(style.id, fabric.id, ACTOR)

        relinked = service.link(style.id, fabric.id, ACTOR, now=now)

        assert relinked.tu_status == LinkStatus.PENDING
        assert relinked.base_test_copied_from is None
        assert relinked.test_id is None
        assert not TestLedgerService(session).is_passing(
            fabric.id, style.id, schema.TestLevel.BASE, now=now)

    def test_relink_restores_own_passing_result(
        self, session, now, make_fabric, make_style, record_test
    ) -> None:
        fabric, style = make_fabric(), make_style()
        service = LinkService(session)
        service.link(style.id, fabric.id, ACTOR, now=now)
        test = record_test(fabric.id, style.id, now)
        service.unlink(style.id, fabric.id, ACTOR)

        relinked = service.link(style.id, fabric.id, ACTOR, now=now)

        assert relinked.tu_status == LinkStatus.APPROVED
        assert relinked.test_id == test.id
        assert relinked.base_test_copied_from is None

    def test_unlink_after_base_is_forbidden(
        self, session, now, make_fabric, make_style, record_test
    ) -> None:
        fabric, style = make_fabric(), make_style()
        service = LinkService(session)
        service.link(style.id, fabric.id, ACTOR, now=now)
        record_test(fabric.id, style.id, now)
        advanced = LifecycleService(session).advance(style.id, ACTOR, now=now)
        assert advanced.stage == StyleStage.BASE_APPROVED

        with pytest.raises(InvariantError) as exc:
            service.unlink(style.id, fabric.id, ACTOR)
        assert exc.value.rule == "unlink_after_base"
        assert len(service.list_links(style.id)) == 1

    def test_unlink_unknown_pair(self, session, make_fabric, make_style) -> None:
        with pytest.raises(NotFoundError):
            LinkService(session).unlink(make_style().id, make_fabric().id, ACTOR)
