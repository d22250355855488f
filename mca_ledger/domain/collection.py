"""Collection analytics derived from matching and status results"""

import math
from typing import List, Sequence

from mca_ledger.domain.constants import LoanStatus, MatchStatus
from mca_ledger.domain.models import (
    CatchUpPayment,
    CollectionMetrics,
    LedgerTransaction,
    LoanRecord,
    PaymentMatch,
    PaymentVelocity,
    StatusCalculation,
)
from mca_ledger.utils.date_utils import days_between

# Relative change between gap halves that counts as a trend
VELOCITY_TREND_THRESHOLD = 0.2

_ON_TIME_STATUSES = frozenset(
    {MatchStatus.MATCHED, MatchStatus.RECOVERY, MatchStatus.COVERED_BY_RECOVERY}
)
_NOT_YET_DUE = frozenset({MatchStatus.UPCOMING, MatchStatus.DUE_TODAY})


def payment_gaps(payments: Sequence[LedgerTransaction]) -> List[int]:
    """Days between consecutive payments, in date order"""
    ordered = sorted(payments, key=lambda p: p.date)
    return [days_between(a.date, b.date) for a, b in zip(ordered, ordered[1:])]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def analyze_payment_velocity(payments: Sequence[LedgerTransaction]) -> PaymentVelocity:
    """
    Describe how regularly payments arrive.

    Consistency is 100 minus the coefficient of variation of the gaps (as a
    percentage, floored at 0). The trend compares the later half of the gaps with
    the earlier half and needs at least four gaps.
    """
    gaps = payment_gaps(payments)
    if not gaps:
        return PaymentVelocity()

    average = _mean(gaps)
    consistency = 0.0
    if len(gaps) > 1 and average > 0:
        std_dev = math.sqrt(sum((gap - average) ** 2 for gap in gaps) / len(gaps))
        consistency = max(0.0, 100 - std_dev / average * 100)

    trend = "stable"
    recent = historical = 0.0
    if len(gaps) >= 4:
        midpoint = len(gaps) // 2
        historical = _mean(gaps[:midpoint])
        recent = _mean(gaps[midpoint:])
        if historical > 0:
            change = recent - historical
            if abs(change / historical) > VELOCITY_TREND_THRESHOLD:
                trend = "decelerating" if change > 0 else "accelerating"

    return PaymentVelocity(
        avg_days_between_payments=average,
        consistency=consistency,
        trend=trend,
        recent_velocity=recent,
        historical_velocity=historical,
    )


def calculate_collection_metrics(
    record: LoanRecord,
    status: StatusCalculation,
    matches: Sequence[PaymentMatch],
    catch_ups: Sequence[CatchUpPayment],
) -> CollectionMetrics:
    """
    Collection performance of one loan up to the reference date.

    Returns:
        CollectionMetrics; rates are percentages. The projected shortfall applies the
        current collection rate to the full schedule (or loan amount when there is no
        schedule).
    """
    expected = status.total_expected_amount
    collected = status.total_received

    collection_rate = 0.0
    outstanding = 0.0
    if expected > 0:
        collection_rate = collected / expected * 100
        outstanding = max(0.0, expected - collected)

    completed = [
        m for m in matches if m.installment is not None and m.status not in _NOT_YET_DUE
    ]
    on_time_rate = 0.0
    if completed:
        on_time = sum(1 for m in completed if m.status in _ON_TIME_STATUSES)
        on_time_rate = on_time / len(completed) * 100

    late = [m.days_late for m in matches if m.days_late > 0]

    recovery_rate = 0.0
    if status.status != LoanStatus.CURRENT and outstanding > 0:
        recovered = sum(c.amount for c in catch_ups)
        recovery_rate = recovered / outstanding * 100

    projected_shortfall = 0.0
    contracted = sum(p.amount for p in record.paydates) or record.loan_amount
    if contracted > 0 and collection_rate > 0:
        projected = contracted * min(collection_rate, 100.0) / 100
        projected_shortfall = max(0.0, contracted - projected)

    return CollectionMetrics(
        expected_to_date=expected,
        collected_to_date=collected,
        collection_rate=collection_rate,
        outstanding=outstanding,
        on_time_payment_rate=on_time_rate,
        avg_days_late=_mean(late),
        recovery_rate=recovery_rate,
        projected_shortfall=projected_shortfall,
    )
