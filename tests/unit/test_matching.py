"""Unit tests for schedule-to-ledger matching"""

from collections import Counter
from datetime import date, timedelta

import pytest

from mca_ledger.domain.constants import MatchStatus
from mca_ledger.domain.matching import ScheduleMatcher
from mca_ledger.domain.rules import MatchingConfig
from mca_ledger.domain.status import StatusClassifier

MAY_6 = date(2024, 5, 6)
MAY_13 = date(2024, 5, 13)
MAY_20 = date(2024, 5, 20)
MAY_27 = date(2024, 5, 27)


@pytest.fixture
def matcher() -> ScheduleMatcher:
    return ScheduleMatcher()


@pytest.fixture
def run(matcher, classify, reference_date):
    """Match a schedule against raw ledger entries (classified first)"""

    def _run(schedule, transactions, installment_amount=1000.0, today=None):
        return matcher.match(
            schedule, classify(transactions), installment_amount, today or reference_date
        )

    return _run


def _by_date(result):
    return {m.installment.date: m for m in result.matches if m.installment is not None}


def test_exact_match(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6, credit=1000)])

    match = result.matches[0]
    assert match.status == MatchStatus.MATCHED
    assert match.variance == 0
    assert match.days_late == 0
    assert result.used_transactions == frozenset({0})


def test_recovery_covers_missed_installments(run, installment, transaction):
    """A 3000 lump after three missed 1000 installments covers all three"""
    schedule = [installment(MAY_6), installment(MAY_13), installment(MAY_20)]

    result = run(schedule, [transaction(MAY_20, credit=3000)])

    statuses = [m.status for m in result.matches]
    assert statuses == [
        MatchStatus.RECOVERY,
        MatchStatus.COVERED_BY_RECOVERY,
        MatchStatus.COVERED_BY_RECOVERY,
    ]
    assert all(m.variance == 0 for m in result.matches)
    assert all(m.transaction_index == 0 for m in result.matches)
    assert result.matches[0].days_late == 14

    catch_up = result.catch_ups[0]
    assert catch_up.periods_covered == 3
    assert catch_up.type == "recovery"
    assert catch_up.installments_claimed == 3
    assert catch_up.overpayment == 0


def test_recovery_leaves_later_installments_open(run, installment, transaction):
    schedule = [installment(d) for d in (MAY_6, MAY_13, MAY_20, MAY_27)]

    result = run(schedule, [transaction(MAY_20, credit=3000)])

    assert _by_date(result)[MAY_27].status == MatchStatus.MISSED


def test_prepayment_never_claims_future_installments(run, installment, transaction):
    """A lump paid on the first due date only covers what is already due"""
    schedule = [installment(MAY_6), installment(MAY_13), installment(MAY_20)]

    result = run(schedule, [transaction(MAY_6, credit=3000)], today=date(2024, 5, 8))

    matches = _by_date(result)
    assert matches[MAY_6].status == MatchStatus.RECOVERY
    assert matches[MAY_13].status == MatchStatus.UPCOMING
    assert matches[MAY_20].status == MatchStatus.UPCOMING
    assert result.catch_ups[0].periods_covered == 3
    assert result.catch_ups[0].installments_claimed == 1


def test_catch_up_payment_claims_one_installment(run, installment, transaction):
    """1.5x the installment is a catch-up, not a recovery, and covers one period"""
    schedule = [installment(MAY_6), installment(MAY_13)]

    result = run(schedule, [transaction(MAY_13, credit=1500)])

    first, second = result.matches
    assert first.status == MatchStatus.RECOVERY
    assert first.recovery_type == "catch-up"
    assert second.status == MatchStatus.MISSED
    assert result.catch_ups[0].overpayment == 500


def test_installment_paid_on_the_day_keeps_its_payment(run, installment, transaction):
    """Recovery claims skip installments already settled by an on-the-day payment"""
    schedule = [installment(MAY_6), installment(MAY_13), installment(MAY_20)]

    result = run(
        schedule,
        [transaction(MAY_6, credit=1000), transaction(MAY_20, credit=2000)],
    )

    matches = _by_date(result)
    assert matches[MAY_6].status == MatchStatus.MATCHED
    assert matches[MAY_13].status == MatchStatus.RECOVERY
    assert matches[MAY_20].status == MatchStatus.COVERED_BY_RECOVERY


def test_partial_payment(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6, credit=600)])

    match = result.matches[0]
    assert match.status == MatchStatus.PARTIAL_PAYMENT
    assert match.variance == -400


def test_tolerance_band(run, installment, transaction):
    """Within 10% is a full match; 89% is partial"""
    full = run([installment(MAY_6)], [transaction(MAY_6, credit=905)])
    partial = run([installment(MAY_6)], [transaction(MAY_6, credit=890)])

    assert full.matches[0].status == MatchStatus.MATCHED
    assert full.matches[0].variance == -95
    assert partial.matches[0].status == MatchStatus.PARTIAL_PAYMENT


def test_small_payment_is_neither_match_nor_extra(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6, credit=400)])

    assert [m.status for m in result.matches] == [MatchStatus.MISSED]
    assert result.used_transactions == frozenset()


def test_late_payment(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6 + timedelta(days=3), credit=1050)])

    match = result.matches[0]
    assert match.status == MatchStatus.LATE_MATCHED
    assert match.days_late == 3
    assert match.variance == 50


def test_early_payment_is_matched(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6 - timedelta(days=2), credit=1000)])

    assert result.matches[0].status == MatchStatus.MATCHED
    assert result.matches[0].days_late == 0


def test_payment_outside_window_becomes_extra(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6 + timedelta(days=8), credit=1000)])

    statuses = [m.status for m in result.matches]
    assert statuses == [MatchStatus.MISSED, MatchStatus.EXTRA]
    extra = result.matches[1]
    assert extra.installment is None
    assert extra.variance == 1000


def test_equidistant_candidates_take_the_earlier(run, installment, transaction):
    result = run(
        [installment(MAY_13)],
        [
            transaction(MAY_13 - timedelta(days=3), credit=1000),
            transaction(MAY_13 + timedelta(days=3), credit=1000),
        ],
    )

    matched = _by_date(result)[MAY_13]
    assert matched.transaction.date == MAY_13 - timedelta(days=3)
    assert result.matches[-1].status == MatchStatus.EXTRA


def test_payment_is_used_once(run, installment, transaction):
    result = run(
        [installment(MAY_6), installment(MAY_6 + timedelta(days=1))],
        [transaction(MAY_6, credit=1000)],
    )

    statuses = Counter(m.status for m in result.matches)
    assert statuses[MatchStatus.MATCHED] == 1
    assert statuses[MatchStatus.MISSED] == 1


def test_reversed_payment_is_not_a_candidate(run, installment, transaction):
    result = run(
        [installment(MAY_6)],
        [transaction(MAY_6, credit=1000), transaction(MAY_6 + timedelta(days=2), debit=1000, type_name="NSF")],
    )

    assert [m.status for m in result.matches] == [MatchStatus.MISSED]


def test_unmatched_installments_by_date(run, installment, reference_date):
    schedule = [
        installment(reference_date - timedelta(days=7)),
        installment(reference_date),
        installment(reference_date + timedelta(days=7)),
    ]

    result = run(schedule, [])

    assert [m.status for m in result.matches] == [
        MatchStatus.MISSED,
        MatchStatus.DUE_TODAY,
        MatchStatus.UPCOMING,
    ]
    assert all(m.actual_amount == 0 for m in result.matches)


def test_every_installment_appears_once(run, weekly_schedule, transaction):
    schedule = weekly_schedule(8)
    payments = [
        transaction(schedule[0].date, credit=1000),
        transaction(schedule[2].date, credit=600),
        transaction(schedule[5].date, credit=2000),
        transaction(schedule[7].date + timedelta(days=2), credit=1000),
    ]

    result = run(schedule, payments)

    installments = [m.installment for m in result.matches if m.installment is not None]
    assert sorted(i.date for i in installments) == [i.date for i in schedule]


def test_matches_sorted_by_date(run, weekly_schedule, transaction):
    schedule = weekly_schedule(3)
    stray = transaction(schedule[0].date + timedelta(days=10), credit=800)

    result = run(schedule, [transaction(schedule[0].date, credit=1000), stray])

    dates = [m.match_date for m in result.matches]
    assert dates == sorted(dates)


def test_recovery_skipped_without_installment_amount(run, installment, transaction):
    result = run([installment(MAY_6)], [transaction(MAY_6, credit=1000)], installment_amount=0)

    assert result.catch_ups == ()
    assert result.matches[0].status == MatchStatus.MATCHED


def test_custom_window(classify, installment, transaction, reference_date):
    matcher = ScheduleMatcher(MatchingConfig(max_days_for_match=2))

    result = matcher.match(
        [installment(MAY_6)],
        classify([transaction(MAY_6 + timedelta(days=3), credit=1000)]),
        1000.0,
        reference_date,
    )

    assert result.matches[0].status == MatchStatus.MISSED


def test_variances_reconcile_received_against_expected(
    matcher, classify, make_loan, installment, transaction, reference_date
):
    """Matched, late, partial and missed variances plus extras account for every dollar"""
    schedule = [installment(d) for d in (MAY_6, MAY_13, MAY_20, MAY_27)]
    ledger = classify(
        [
            transaction(date(2024, 4, 25), credit=800),
            transaction(MAY_6, credit=1000),
            transaction(date(2024, 5, 16), credit=1050),
            transaction(MAY_20, credit=600),
        ]
    )

    result = matcher.match(schedule, ledger, 1000.0, reference_date)
    status = StatusClassifier().classify(
        make_loan(paydates=tuple(schedule)), ledger, result.matches, reference_date
    )

    statuses = Counter(m.status for m in result.matches)
    assert statuses == Counter(
        {
            MatchStatus.MATCHED: 1,
            MatchStatus.LATE_MATCHED: 1,
            MatchStatus.PARTIAL_PAYMENT: 1,
            MatchStatus.MISSED: 1,
            MatchStatus.EXTRA: 1,
        }
    )
    settled = sum(
        m.variance
        for m in result.matches
        if m.status
        in (MatchStatus.MATCHED, MatchStatus.LATE_MATCHED, MatchStatus.PARTIAL_PAYMENT)
    )
    shortfall = sum(m.expected_amount for m in result.matches if m.status == MatchStatus.MISSED)
    extras = sum(m.actual_amount for m in result.matches if m.status == MatchStatus.EXTRA)

    assert settled - shortfall == pytest.approx(-1350)
    assert settled - shortfall + extras == pytest.approx(
        status.total_received - status.total_expected_amount
    )
