"""Delinquency status classification"""

from datetime import date
from typing import Optional, Sequence, Tuple

from mca_ledger.domain.constants import (
    SATISFIED_MATCH_STATUSES,
    LoanStatus,
    MatchStatus,
    TransactionCategory,
)
from mca_ledger.domain.models import (
    LedgerTransaction,
    LoanRecord,
    PaymentMatch,
    StatusCalculation,
)
from mca_ledger.domain.rules import StatusConfig
from mca_ledger.utils.date_utils import day_diff

_STATUS_BY_MISSED = (
    LoanStatus.CURRENT,
    LoanStatus.DELINQUENT_1,
    LoanStatus.DELINQUENT_2,
    LoanStatus.DELINQUENT_3,
)


def status_for_missed(missed_payments: int) -> LoanStatus:
    """Map a missed-installment count to its delinquency bucket"""
    if missed_payments < len(_STATUS_BY_MISSED):
        return _STATUS_BY_MISSED[max(0, missed_payments)]
    return LoanStatus.DEFAULT


def explain_status(status: LoanStatus, missed_payments: int, reason: Optional[str] = None) -> str:
    if status == LoanStatus.RESTRUCTURED:
        return f"Loan has been restructured ({reason})" if reason else "Loan has been restructured"
    if missed_payments == 0:
        return "All payments up to date"
    if missed_payments == 1:
        return "1 payment missed"
    if status == LoanStatus.DEFAULT:
        return f"{missed_payments} payments missed (4+ = default)"
    return f"{missed_payments} payments missed"


class StatusClassifier:
    """Derives missed installments, delinquency bucket and days delinquent"""

    def __init__(self, config: StatusConfig = StatusConfig()):
        self.config = config

    def restructure_reason(
        self, record: LoanRecord, transactions: Sequence[LedgerTransaction]
    ) -> Optional[str]:
        if record.is_restructured:
            return "restructure flag set"
        for transaction in transactions:
            if transaction.category == TransactionCategory.SETTLEMENT:
                label = transaction.detail_type or transaction.type_name or "settlement"
                return f"{label} on {transaction.date.isoformat()}"
        return None

    def count_satisfied(self, past_due: Sequence[PaymentMatch]) -> int:
        """
        Count past-due installments that have been paid.

        Fully matched and recovery-covered installments count one each. Partial
        payments are accumulated in date order: each time the running sum reaches
        the threshold share of the installment being credited, one installment is
        counted and its full amount is taken off the sum (the remainder carries).
        """
        satisfied = 0
        running = 0.0
        threshold = self.config.partial_accumulation_threshold

        for match in past_due:
            if match.status in SATISFIED_MATCH_STATUSES:
                satisfied += 1
            elif match.status == MatchStatus.PARTIAL_PAYMENT:
                running += match.actual_amount
                if running >= match.expected_amount * threshold:
                    satisfied += 1
                    running -= match.expected_amount
        return satisfied

    def classify(
        self,
        record: LoanRecord,
        transactions: Sequence[LedgerTransaction],
        matches: Sequence[PaymentMatch],
        reference_date: date,
    ) -> StatusCalculation:
        """
        Classify a loan's delinquency as of ``reference_date``.

        Requirements:
        - Restructure flag or any settlement entry wins over everything else
        - Only installments dated strictly before the reference date are expected
        - missed = max(0, expected - satisfied)
        - Days delinquent is the age of the oldest installment still counted as missed
        """
        past_due: Tuple[PaymentMatch, ...] = tuple(
            m for m in matches if m.installment is not None and m.installment.date < reference_date
        )
        expected = tuple(m.installment for m in past_due)
        payments = tuple(t for t in transactions if t.is_valid_payment)

        satisfied = self.count_satisfied(past_due)
        missed = max(0, len(expected) - satisfied)

        reason = self.restructure_reason(record, transactions)
        if reason is not None:
            status = LoanStatus.RESTRUCTURED
        else:
            status = status_for_missed(missed)

        days_delinquent = 0
        if missed > 0:
            oldest_missed = expected[-missed]
            days_delinquent = max(0, day_diff(oldest_missed.date, reference_date))

        return StatusCalculation(
            reference_date=reference_date,
            expected_installments=expected,
            actual_payments=payments,
            total_expected=len(expected),
            total_expected_amount=sum(i.amount for i in expected),
            total_received=sum(p.credit for p in payments),
            installments_satisfied=satisfied,
            missed_payments=missed,
            is_restructured=reason is not None,
            restructure_reason=reason,
            status=status,
            explanation=explain_status(status, missed, reason),
            days_delinquent=days_delinquent,
        )
