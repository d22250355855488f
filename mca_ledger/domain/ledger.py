"""Ledger classification - categorizes bank ledger entries and links reversals"""

from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from mca_ledger.domain.constants import TransactionCategory
from mca_ledger.domain.models import LedgerTransaction, TransactionSummary
from mca_ledger.domain.rules import (
    CLASSIFICATION_RULES,
    DETAIL_LABELS,
    ClassificationRule,
    MatchingConfig,
)
from mca_ledger.utils.date_utils import days_between

_FALLBACK_LABELS = {
    TransactionCategory.PAYMENT: "Payment",
    TransactionCategory.REVERSED: "Reversed Payment",
    TransactionCategory.DEBIT: "Debit",
}


@dataclass(frozen=True)
class ClassifiedLedger:
    transactions: Tuple[LedgerTransaction, ...]
    summary: TransactionSummary


def _same_amount(first: float, second: float) -> bool:
    return round(first, 2) == round(second, 2)


class LedgerClassifier:
    """Table-driven transaction categorizer with reversal linking"""

    def __init__(
        self,
        rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES,
        detail_labels: Mapping[TransactionCategory, Tuple[Tuple[str, str], ...]] = DETAIL_LABELS,
        matching: MatchingConfig = MatchingConfig(),
    ):
        self.rules = tuple(rules)
        self.detail_labels = detail_labels
        self.matching = matching

    @staticmethod
    def _search_text(transaction: LedgerTransaction) -> str:
        return f"{transaction.type_name} {transaction.reference}".lower()

    def keyword_category(self, transaction: LedgerTransaction) -> Optional[TransactionCategory]:
        """First rule whose pattern occurs in the type name or reference, if any"""
        text = self._search_text(transaction)
        for rule in self.rules:
            if rule.pattern in text:
                return rule.category
        return None

    def base_category(self, transaction: LedgerTransaction) -> TransactionCategory:
        category = self.keyword_category(transaction)
        if category is not None:
            return category
        if transaction.credit > 0:
            return TransactionCategory.PAYMENT
        if transaction.debit > 0:
            return TransactionCategory.DEBIT
        return TransactionCategory.OTHER

    def detail_type(self, transaction: LedgerTransaction, category: TransactionCategory) -> str:
        labels = self.detail_labels.get(category)
        if labels:
            text = self._search_text(transaction)
            for pattern, label in labels:
                if pattern in text:
                    return label
        return _FALLBACK_LABELS.get(category) or transaction.type_name or "Transaction"

    def classify(self, transactions: Sequence[LedgerTransaction]) -> ClassifiedLedger:
        """
        Categorize every ledger entry and link reversals to the payments they void.

        Requirements:
        - Same-day entries are ordered so reversals come after what they may void
        - A reversal voids the nearest earlier un-reversed payment of the same amount
          within the reversal window, or within the extended window when no other
          same-amount payment lies in between
        - A payment can be voided at most once

        Returns:
            ClassifiedLedger with the re-ordered, flagged entries and their summary
        """
        categories = [self.base_category(t) for t in transactions]
        order = sorted(
            range(len(transactions)),
            key=lambda i: (
                transactions[i].date,
                categories[i] == TransactionCategory.REVERSAL,
            ),
        )
        ordered = [transactions[i] for i in order]
        categories = [categories[i] for i in order]

        reversal_of: Dict[int, int] = {}
        reversed_by: Dict[int, int] = {}
        for index, transaction in enumerate(ordered):
            if categories[index] != TransactionCategory.REVERSAL or transaction.debit <= 0:
                continue
            original = self._find_original(ordered, categories, reversed_by, index)
            if original is not None:
                reversal_of[index] = original
                reversed_by[original] = index

        classified = []
        for index, transaction in enumerate(ordered):
            category = categories[index]
            is_reversed = index in reversed_by
            if is_reversed:
                category = TransactionCategory.REVERSED

            if is_reversed:
                net_amount = 0.0
            elif transaction.credit > 0:
                net_amount = transaction.credit
            elif transaction.debit > 0:
                net_amount = -transaction.debit
            else:
                net_amount = 0.0

            classified.append(
                replace(
                    transaction,
                    category=category,
                    detail_type=self.detail_type(transaction, category),
                    is_reversal=categories[index] == TransactionCategory.REVERSAL,
                    is_reversed=is_reversed,
                    reversal_of=reversal_of.get(index),
                    reversed_by=reversed_by.get(index),
                    net_amount=net_amount,
                )
            )

        result = tuple(classified)
        return ClassifiedLedger(transactions=result, summary=summarize_transactions(result))

    def _find_original(
        self,
        ordered: List[LedgerTransaction],
        categories: List[TransactionCategory],
        reversed_by: Dict[int, int],
        reversal_index: int,
    ) -> Optional[int]:
        reversal = ordered[reversal_index]

        def is_candidate(i: int) -> bool:
            return (
                categories[i] == TransactionCategory.PAYMENT
                and i not in reversed_by
                and _same_amount(ordered[i].credit, reversal.debit)
            )

        for i in range(reversal_index - 1, -1, -1):
            if not is_candidate(i):
                continue
            gap = days_between(ordered[i].date, reversal.date)
            if gap <= self.matching.reversal_window_days:
                return i
            if gap <= self.matching.reversal_extended_window_days and not any(
                is_candidate(j) for j in range(i + 1, reversal_index)
            ):
                return i
        return None


def summarize_transactions(transactions: Sequence[LedgerTransaction]) -> TransactionSummary:
    """Counts and sums per category over classified entries"""
    counts = {category: 0 for category in TransactionCategory}
    total_payments = 0.0
    total_reversals = 0.0
    total_fees = 0.0
    settlement_amount = 0.0
    reversed_amount = 0.0

    for transaction in transactions:
        counts[transaction.category] += 1
        if transaction.category == TransactionCategory.PAYMENT:
            total_payments += transaction.credit
        elif transaction.category == TransactionCategory.REVERSED:
            reversed_amount += transaction.credit
        elif transaction.category == TransactionCategory.REVERSAL:
            total_reversals += transaction.debit
        elif transaction.category == TransactionCategory.FEE:
            total_fees += transaction.credit or transaction.debit
        elif transaction.category == TransactionCategory.SETTLEMENT:
            settlement_amount += transaction.credit or transaction.debit

    # Gross payments include those later voided
    payment_count = counts[TransactionCategory.PAYMENT] + counts[TransactionCategory.REVERSED]
    reversed_count = counts[TransactionCategory.REVERSED]
    success_rate = 100.0
    if payment_count:
        success_rate = (payment_count - reversed_count) / payment_count * 100

    return TransactionSummary(
        total_count=len(transactions),
        payment_count=payment_count,
        reversal_count=counts[TransactionCategory.REVERSAL],
        fee_count=counts[TransactionCategory.FEE],
        settlement_count=counts[TransactionCategory.SETTLEMENT],
        capital_count=counts[TransactionCategory.CAPITAL],
        reversed_payment_count=reversed_count,
        total_payments=total_payments + reversed_amount,
        total_reversals=total_reversals,
        total_fees=total_fees,
        settlement_amount=settlement_amount,
        reversed_amount=reversed_amount,
        net_payments=total_payments,
        payment_success_rate=success_rate,
    )
