"""Batch pipeline - rows in, reconciled and scored loans plus portfolio metrics out"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date
from typing import Any, List, Optional, Sequence, Tuple

from mca_ledger.domain.collection import analyze_payment_velocity, calculate_collection_metrics
from mca_ledger.domain.exceptions import RecordProcessingError
from mca_ledger.domain.ledger import LedgerClassifier
from mca_ledger.domain.matching import ScheduleMatcher
from mca_ledger.domain.models import (
    BatchResult,
    LoanRecord,
    ValidationResult,
    ValidationSummary,
)
from mca_ledger.domain.portfolio import aggregate_portfolio
from mca_ledger.domain.records import GroupedRows, RecordBuilder
from mca_ledger.domain.rules import DEFAULT_ENGINE_CONFIG, EngineConfig
from mca_ledger.domain.scoring import RiskScorer, calculate_dscr
from mca_ledger.domain.status import StatusClassifier
from mca_ledger.domain.validation import split_header, summarize_validation, validate_loan
from mca_ledger.infrastructure.observability.logging import log_data_quality_issue

logger = logging.getLogger(__name__)

BUDGET_EXHAUSTED = "Not processed: batch time budget exhausted"


class LoanPipeline:
    """Runs classification, matching, status and scoring for every loan in a batch"""

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config
        self.builder = RecordBuilder()
        self.classifier = LedgerClassifier(config.classification_rules, matching=config.matching)
        self.matcher = ScheduleMatcher(config.matching)
        self.status_classifier = StatusClassifier(config.status)
        self.scorer = RiskScorer(config.industry_tiers)

    def group_rows(self, rows: Sequence[Sequence[Any]]) -> GroupedRows:
        """Validate batch structure and group data rows into records; fails fast on bad structure"""
        _, data_rows = split_header(rows)
        grouped = self.builder.build(data_rows)

        for warning in grouped.batch_warnings:
            log_data_quality_issue(warning)
        for record in grouped.records:
            for warning in record.data_quality_warnings:
                log_data_quality_issue(warning, loan_number=record.loan_number)
        return grouped

    def process_record(self, record: LoanRecord, reference_date: date) -> LoanRecord:
        """
        Derive every per-loan field for one record.

        A failure never escapes: the record comes back as built, tagged with
        ``processing_error``, so the batch stays fully sized.
        """
        try:
            return self._derive(record, reference_date)
        except Exception as exc:
            logger.exception(
                "Failed to process loan",
                extra={"external_id": record.external_id, "loan_number": record.loan_number},
            )
            return replace(record, processing_error=f"{type(exc).__name__}: {exc}")

    def _derive(self, record: LoanRecord, reference_date: date) -> LoanRecord:
        bad_amounts = [p for p in record.paydates if p.amount <= 0]
        if bad_amounts:
            raise RecordProcessingError(
                record.external_id,
                record.loan_number,
                f"schedule entry on {bad_amounts[0].date.isoformat()} has non-positive amount "
                f"{bad_amounts[0].amount}",
            )

        ledger = self.classifier.classify(record.transactions)
        result = self.matcher.match(
            record.paydates, ledger.transactions, record.installment_amount, reference_date
        )
        status = self.status_classifier.classify(
            record, ledger.transactions, result.matches, reference_date
        )

        processed = replace(
            record,
            transactions=ledger.transactions,
            transaction_summary=ledger.summary,
            payment_matching=result.matches,
            status_calculation=status,
            status=status.status,
            missed_payments=status.missed_payments,
            days_delinquent=status.days_delinquent,
            catch_up_payments=result.catch_ups,
            processing_error=None,
        )
        return replace(
            processed,
            collection_metrics=calculate_collection_metrics(
                processed, status, result.matches, result.catch_ups
            ),
            payment_velocity=analyze_payment_velocity(status.actual_payments),
            risk_assessment=self.scorer.assess(processed, status, reference_date),
            dscr=calculate_dscr(record.lead),
        )

    def process_records(
        self,
        records: Sequence[LoanRecord],
        reference_date: date,
        max_workers: int = 1,
        time_budget_seconds: Optional[float] = None,
    ) -> Tuple[LoanRecord, ...]:
        """
        Process records independently, sequentially or on a thread pool.

        Output order matches input order. With a time budget, records not yet started
        when it runs out are returned unprocessed with a processing error.
        """
        deadline = None
        if time_budget_seconds is not None:
            deadline = time.monotonic() + time_budget_seconds

        def run(record: LoanRecord) -> LoanRecord:
            if deadline is not None and time.monotonic() >= deadline:
                return replace(record, processing_error=BUDGET_EXHAUSTED)
            return self.process_record(record, reference_date)

        if max_workers > 1 and len(records) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                return tuple(executor.map(run, records))
        return tuple(run(record) for record in records)

    def process_batch(
        self,
        rows: Sequence[Sequence[Any]],
        reference_date: Optional[date] = None,
        max_workers: int = 1,
        time_budget_seconds: Optional[float] = None,
    ) -> BatchResult:
        """
        Full run: group, reconcile and score every loan, then aggregate the portfolio.

        Raises:
            BatchStructureError: the rows cannot be read as a batch (the only fatal path)
        """
        today = reference_date or date.today()
        grouped = self.group_rows(rows)

        processed = self.process_records(
            grouped.records, today, max_workers=max_workers, time_budget_seconds=time_budget_seconds
        )
        loans, portfolio = aggregate_portfolio(processed)
        validations = [validate_loan(loan) for loan in loans]

        return BatchResult(
            loans=loans,
            portfolio=portfolio,
            validation=summarize_validation(loans, validations, grouped.skipped_rows),
        )

    def validate_rows(
        self, rows: Sequence[Sequence[Any]]
    ) -> Tuple[List[Tuple[LoanRecord, ValidationResult]], ValidationSummary]:
        """Group rows and validate each loan without reconciling it"""
        grouped = self.group_rows(rows)
        results = [(record, validate_loan(record)) for record in grouped.records]
        summary = summarize_validation(
            grouped.records, [result for _, result in results], grouped.skipped_rows
        )
        return results, summary
