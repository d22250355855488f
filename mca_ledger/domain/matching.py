"""Schedule matching - reconciles expected installments against ledger payments.

Three passes over two chronological sequences:

1. Recovery detection: a payment of at least ``catch_up_multiplier`` installments
   claims the earliest open installments dated on or before it.
2. Direct matching: each remaining installment takes the closest unused payment
   inside the day window, as a full or partial match.
3. Extras: unused payments worth at least half an installment are reported with no
   installment attached.

The matcher is a pure function of its inputs; nothing passed in is modified.
"""

import math
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple

from mca_ledger.domain.constants import MatchStatus
from mca_ledger.domain.models import (
    CatchUpPayment,
    LedgerTransaction,
    MatchResult,
    PaymentMatch,
    ScheduledInstallment,
)
from mca_ledger.domain.rules import MatchingConfig
from mca_ledger.utils.date_utils import day_diff

Candidate = Tuple[int, LedgerTransaction]

# Absorbs float noise in tolerance comparisons (amounts are currency)
_EPSILON = 1e-9


class ScheduleMatcher:
    """Matches scheduled installments to classified payment transactions"""

    def __init__(self, config: MatchingConfig = MatchingConfig()):
        self.config = config

    def match(
        self,
        schedule: Sequence[ScheduledInstallment],
        transactions: Sequence[LedgerTransaction],
        installment_amount: float,
        reference_date: date,
    ) -> MatchResult:
        """
        Reconcile a loan's schedule against its classified ledger.

        Requirements:
        - Only valid payments (category payment, not reversed, credit > 0) are candidates
        - Every installment ends up in exactly one PaymentMatch
        - A candidate is consumed by at most one direct match; a recovery payment may
          cover several installments

        Returns:
            MatchResult with matches sorted by date, the consumed transaction indexes
            and the catch-up payments detected in pass 1
        """
        candidates: List[Candidate] = [
            (index, transaction)
            for index, transaction in enumerate(transactions)
            if transaction.is_valid_payment
        ]

        used: Set[int] = set()
        assigned: Dict[int, PaymentMatch] = {}

        catch_ups = self._claim_recoveries(
            schedule, candidates, installment_amount, used, assigned
        )

        for position, installment in enumerate(schedule):
            if position in assigned:
                continue
            match = self._direct_match(installment, candidates, used)
            if match is None:
                match = self._unmatched(installment, reference_date)
            assigned[position] = match

        matches = [assigned[position] for position in range(len(schedule))]
        matches.extend(self._extras(candidates, used, installment_amount))
        matches.sort(key=lambda m: m.match_date)

        return MatchResult(
            matches=tuple(matches),
            used_transactions=frozenset(used),
            catch_ups=tuple(catch_ups),
        )

    def _within_tolerance(self, amount: float, expected: float) -> bool:
        return abs(amount - expected) <= self.config.amount_tolerance * expected + _EPSILON

    def _claim_recoveries(
        self,
        schedule: Sequence[ScheduledInstallment],
        candidates: List[Candidate],
        installment_amount: float,
        used: Set[int],
        assigned: Dict[int, PaymentMatch],
    ) -> List[CatchUpPayment]:
        if installment_amount <= 0:
            return []

        catch_up_floor = installment_amount * self.config.catch_up_multiplier
        recovery_floor = installment_amount * self.config.recovery_multiplier
        lump_sums = [(i, t) for i, t in candidates if t.credit >= catch_up_floor - _EPSILON]
        lump_indexes = {i for i, _ in lump_sums}

        # Installments already paid on the day by an ordinary payment stay with it
        paid_on_the_day = {
            position
            for position, installment in enumerate(schedule)
            if any(
                t.date == installment.date and self._within_tolerance(t.credit, installment.amount)
                for i, t in candidates
                if i not in lump_indexes
            )
        }

        catch_ups = []
        for index, transaction in lump_sums:
            periods = math.floor(transaction.credit / installment_amount + _EPSILON)
            kind = "recovery" if transaction.credit >= recovery_floor - _EPSILON else "catch-up"

            open_positions = [
                position
                for position in range(len(schedule))
                if position not in assigned
                and position not in paid_on_the_day
                and schedule[position].date <= transaction.date
            ]
            claimed = open_positions[:periods]

            for order, position in enumerate(claimed):
                installment = schedule[position]
                assigned[position] = PaymentMatch(
                    status=MatchStatus.RECOVERY if order == 0 else MatchStatus.COVERED_BY_RECOVERY,
                    installment=installment,
                    transaction=transaction,
                    transaction_index=index,
                    expected_amount=installment.amount,
                    actual_amount=installment.amount,
                    variance=0.0,
                    days_late=max(0, day_diff(installment.date, transaction.date)),
                    recovery_type=kind,
                )
            if claimed:
                used.add(index)

            expected = installment_amount * periods
            catch_ups.append(
                CatchUpPayment(
                    transaction_index=index,
                    date=transaction.date,
                    amount=transaction.credit,
                    periods_covered=periods,
                    type=kind,
                    expected_amount=expected,
                    overpayment=transaction.credit - expected,
                    installments_claimed=len(claimed),
                    transaction_type=transaction.type_name,
                )
            )
        return catch_ups

    def _direct_match(
        self,
        installment: ScheduledInstallment,
        candidates: List[Candidate],
        used: Set[int],
    ) -> Optional[PaymentMatch]:
        best: Optional[Candidate] = None
        best_distance = None
        best_partial = False

        for index, transaction in candidates:
            if index in used:
                continue
            distance = abs(day_diff(installment.date, transaction.date))
            if distance > self.config.max_days_for_match:
                continue

            if self._within_tolerance(transaction.credit, installment.amount):
                partial = False
            elif installment.amount > 0 and (
                self.config.partial_min_ratio
                <= transaction.credit / installment.amount
                < self.config.partial_max_ratio
            ):
                partial = True
            else:
                continue

            # Strict comparison keeps the chronologically first candidate on ties
            if best_distance is None or distance < best_distance:
                best, best_distance, best_partial = (index, transaction), distance, partial

        if best is None:
            return None

        index, transaction = best
        used.add(index)
        days_late = max(0, day_diff(installment.date, transaction.date))
        if best_partial:
            status = MatchStatus.PARTIAL_PAYMENT
        elif transaction.date > installment.date:
            status = MatchStatus.LATE_MATCHED
        else:
            status = MatchStatus.MATCHED

        return PaymentMatch(
            status=status,
            installment=installment,
            transaction=transaction,
            transaction_index=index,
            expected_amount=installment.amount,
            actual_amount=transaction.credit,
            variance=transaction.credit - installment.amount,
            days_late=days_late,
        )

    @staticmethod
    def _unmatched(installment: ScheduledInstallment, reference_date: date) -> PaymentMatch:
        if installment.date == reference_date:
            status = MatchStatus.DUE_TODAY
        elif installment.date > reference_date:
            status = MatchStatus.UPCOMING
        else:
            status = MatchStatus.MISSED

        return PaymentMatch(
            status=status,
            installment=installment,
            transaction=None,
            transaction_index=None,
            expected_amount=installment.amount,
            actual_amount=0.0,
            variance=-installment.amount,
        )

    def _extras(
        self,
        candidates: List[Candidate],
        used: Set[int],
        installment_amount: float,
    ) -> List[PaymentMatch]:
        floor = installment_amount * self.config.partial_min_ratio
        return [
            PaymentMatch(
                status=MatchStatus.EXTRA,
                installment=None,
                transaction=transaction,
                transaction_index=index,
                expected_amount=0.0,
                actual_amount=transaction.credit,
                variance=transaction.credit,
            )
            for index, transaction in candidates
            if index not in used and transaction.credit >= floor - _EPSILON
        ]
