"""SLA status, days remaining and factory risk scoring."""
from datetime import datetime, timedelta

from app.db.schema import CertificateStatus, Priority, RiskLevel, SlaStatus
from app.services.sla import days_remaining, risk_level, risk_score, sla_status


NOW = datetime(2025, 3, 3, 9, 0, 0)


class TestSlaStatus:
    def test_due_now_is_never_on_track(self) -> None:
        assert sla_status(NOW, NOW) == SlaStatus.AT_RISK
        assert sla_status(NOW, NOW, Priority.URGENT) == SlaStatus.AT_RISK

    def test_one_second_late_is_overdue(self) -> None:
        assert sla_status(NOW - timedelta(seconds=1), NOW) == SlaStatus.OVERDUE

    def test_two_day_window(self) -> None:
        assert sla_status(NOW + timedelta(days=2), NOW) == SlaStatus.AT_RISK
        assert sla_status(NOW + timedelta(days=2, seconds=1), NOW) == SlaStatus.ON_TRACK
        assert sla_status(NOW + timedelta(days=10), NOW) == SlaStatus.ON_TRACK

    def test_rush_items_use_same_day_window(self) -> None:
        assert sla_status(NOW + timedelta(hours=23), NOW, Priority.URGENT) == SlaStatus.AT_RISK
        assert sla_status(NOW + timedelta(days=1), NOW, Priority.URGENT) == SlaStatus.ON_TRACK
        assert sla_status(NOW + timedelta(days=2), NOW, Priority.URGENT) == SlaStatus.ON_TRACK


class TestDaysRemaining:
    def test_rounds_partial_days_up(self) -> None:
        assert days_remaining(NOW + timedelta(days=3), NOW) == 3
        assert days_remaining(NOW + timedelta(days=2, hours=1), NOW) == 3
        assert days_remaining(NOW, NOW) == 0

    def test_negative_when_overdue(self) -> None:
        assert days_remaining(NOW - timedelta(days=4), NOW) == -4

    def test_partial_day_overdue_counts_as_a_day_late(self) -> None:
        assert days_remaining(NOW - timedelta(hours=12), NOW) == -1
        assert days_remaining(NOW - timedelta(days=1, minutes=1), NOW) == -2


class TestRiskScore:
    def test_clean_factory_scores_zero(self) -> None:
        assert risk_score(0.0, 0.0, 100.0, CertificateStatus.COMPLIANT) == 0

    def test_worst_factory_scores_hundred(self) -> None:
        assert risk_score(1.0, 1.0, 0.0, CertificateStatus.NON_COMPLIANT) == 100

    def test_weights(self) -> None:
        assert risk_score(1.0, 0.0, 100.0, CertificateStatus.COMPLIANT) == 40
        assert risk_score(0.0, 1.0, 100.0, CertificateStatus.COMPLIANT) == 30
        assert risk_score(0.0, 0.0, 0.0, CertificateStatus.COMPLIANT) == 20
        assert risk_score(0.0, 0.0, 100.0, CertificateStatus.NON_COMPLIANT) == 10

    def test_rounds_half_up(self) -> None:
        # 0.2 * 0.025 -> 0.5
        assert risk_score(0.0, 0.0, 97.5, CertificateStatus.COMPLIANT) == 1

    def test_levels(self) -> None:
        assert risk_level(0) == RiskLevel.LOW
        assert risk_level(30) == RiskLevel.LOW
        assert risk_level(31) == RiskLevel.MEDIUM
        assert risk_level(60) == RiskLevel.MEDIUM
        assert risk_level(61) == RiskLevel.HIGH
