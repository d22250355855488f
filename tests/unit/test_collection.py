"""Unit tests for collection metrics and payment velocity"""

from datetime import date, timedelta

import pytest

from mca_ledger.domain.collection import (
    analyze_payment_velocity,
    calculate_collection_metrics,
    payment_gaps,
)
from mca_ledger.domain.matching import ScheduleMatcher
from mca_ledger.domain.status import StatusClassifier


@pytest.fixture
def payments_every(transaction):
    def _make(*gaps, start=date(2024, 1, 1)):
        days = [0]
        for gap in gaps:
            days.append(days[-1] + gap)
        return [transaction(start + timedelta(days=d), credit=1000) for d in days]

    return _make


@pytest.fixture
def metrics_for(classify, make_loan, reference_date):
    matcher = ScheduleMatcher()
    classifier = StatusClassifier()

    def _metrics(schedule, transactions, **loan_fields):
        record = make_loan(paydates=tuple(schedule), **loan_fields)
        ledger = classify(transactions)
        result = matcher.match(schedule, ledger, record.installment_amount, reference_date)
        status = classifier.classify(record, ledger, result.matches, reference_date)
        return calculate_collection_metrics(record, status, result.matches, result.catch_ups)

    return _metrics


def test_payment_gaps_are_date_ordered(payments_every):
    payments = payments_every(7, 3)

    assert payment_gaps(list(reversed(payments))) == [7, 3]


def test_velocity_needs_two_payments(payments_every):
    velocity = analyze_payment_velocity(payments_every())

    assert velocity.avg_days_between_payments == 0
    assert velocity.trend == "stable"


def test_regular_payments_are_fully_consistent(payments_every):
    velocity = analyze_payment_velocity(payments_every(7, 7, 7, 7))

    assert velocity.avg_days_between_payments == 7
    assert velocity.consistency == 100
    assert velocity.trend == "stable"


def test_slowing_payments_decelerate(payments_every):
    velocity = analyze_payment_velocity(payments_every(7, 7, 14, 14))

    assert velocity.trend == "decelerating"
    assert velocity.historical_velocity == 7
    assert velocity.recent_velocity == 14


def test_speeding_up_payments_accelerate(payments_every):
    velocity = analyze_payment_velocity(payments_every(14, 14, 7, 7))

    assert velocity.trend == "accelerating"


def test_trend_needs_four_gaps(payments_every):
    velocity = analyze_payment_velocity(payments_every(7, 30, 30))

    assert velocity.trend == "stable"
    assert velocity.consistency < 100


def test_fully_paid_loan(metrics_for, weekly_schedule, transaction):
    schedule = weekly_schedule(4)

    metrics = metrics_for(schedule, [transaction(i.date, credit=1000) for i in schedule])

    assert metrics.expected_to_date == 4000
    assert metrics.collected_to_date == 4000
    assert metrics.collection_rate == 100
    assert metrics.outstanding == 0
    assert metrics.on_time_payment_rate == 100
    assert metrics.avg_days_late == 0
    assert metrics.projected_shortfall == 0


def test_half_paid_loan(metrics_for, weekly_schedule, transaction):
    """Two of four installments paid, one of them three days late"""
    schedule = weekly_schedule(4)
    payments = [
        transaction(schedule[0].date, credit=1000),
        transaction(schedule[1].date + timedelta(days=3), credit=1000),
    ]

    metrics = metrics_for(schedule, payments)

    assert metrics.collection_rate == 50
    assert metrics.outstanding == 2000
    assert metrics.on_time_payment_rate == 25  # one of four is on time
    assert metrics.avg_days_late == 3
    assert metrics.projected_shortfall == 2000  # half of the 4000 schedule


def test_upcoming_installments_do_not_count(metrics_for, reference_date, installment, transaction):
    schedule = [
        installment(reference_date - timedelta(days=7)),
        installment(reference_date + timedelta(days=7)),
    ]

    metrics = metrics_for(schedule, [transaction(schedule[0].date, credit=1000)])

    assert metrics.expected_to_date == 1000
    assert metrics.on_time_payment_rate == 100


def test_recovery_rate_when_delinquent(metrics_for, weekly_schedule, transaction):
    """A 2000 catch-up against four installments leaves the loan two behind"""
    schedule = weekly_schedule(4)

    metrics = metrics_for(schedule, [transaction(schedule[1].date, credit=2000)])

    assert metrics.outstanding == 2000
    assert metrics.recovery_rate == 100


def test_nothing_due(metrics_for, installment, reference_date):
    metrics = metrics_for([installment(reference_date + timedelta(days=7))], [])

    assert metrics.collection_rate == 0
    assert metrics.outstanding == 0
    assert metrics.on_time_payment_rate == 0
