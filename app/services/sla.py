"""
Derived status for dashboards. Pure functions over dates and counts;
nothing here is stored or used for gating.
"""
import math
from datetime import datetime, timedelta

from app.core.config import settings
from app.db.schema import SlaStatus, Priority, RiskLevel, CertificateStatus


RUSH_PRIORITIES = {Priority.URGENT}

# Factory risk weights
TEST_FAILURE_WEIGHT = 0.4
INSPECTION_WEIGHT = 0.3
DELIVERY_WEIGHT = 0.2
COMPLIANCE_WEIGHT = 0.1

COMPLIANCE_RISK = {
    CertificateStatus.COMPLIANT: 0.0,
    CertificateStatus.PENDING_AUDIT: 0.5,
    CertificateStatus.AT_RISK: 0.7,
    CertificateStatus.NON_COMPLIANT: 1.0,
}


def sla_status(
    due_date: datetime,
    now: datetime,
    priority: Priority = Priority.NORMAL,
) -> SlaStatus:
    """
    overdue once `now` passes the due date; at_risk inside the warning
    window (2 days, or the same day for rush items); otherwise on_track.
    """
    if now > due_date:
        return SlaStatus.OVERDUE

    remaining = due_date - now
    if priority in RUSH_PRIORITIES:
        at_risk = remaining < timedelta(days=1)
    else:
        at_risk = remaining <= timedelta(days=settings.sla_at_risk_days)

    return SlaStatus.AT_RISK if at_risk else SlaStatus.ON_TRACK


def days_remaining(due_date: datetime, now: datetime) -> int:
    """
    Whole days left, rounded away from zero: a partial day ahead counts as
    a day left, a partial day overdue as a day late. Zero only at the due
    instant.
    """
    days = (due_date - now) / timedelta(days=1)
    return math.floor(days) if days < 0 else math.ceil(days)


def risk_score(
    test_failure_rate: float,
    inspection_failure_rate: float,
    on_time_delivery_pct: float,
    certificate_status: CertificateStatus,
) -> int:
    late_delivery_rate = 1 - on_time_delivery_pct / 100
    weighted = (
        TEST_FAILURE_WEIGHT * test_failure_rate
        + INSPECTION_WEIGHT * inspection_failure_rate
        + DELIVERY_WEIGHT * late_delivery_rate
        + COMPLIANCE_WEIGHT * COMPLIANCE_RISK[certificate_status]
    )
    # Half-up, not banker's rounding
    return max(0, min(100, math.floor(100 * weighted + 0.5)))


def risk_level(score: int) -> RiskLevel:
    if score > 60:
        return RiskLevel.HIGH
    if score >= 31:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
