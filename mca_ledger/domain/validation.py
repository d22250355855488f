"""Input structure checks and per-loan data validation"""

from typing import Any, List, Sequence, Tuple

from mca_ledger.domain.constants import DEFAULTS, REQUIRED_COLUMNS
from mca_ledger.domain.exceptions import BatchStructureError, MissingColumnsError
from mca_ledger.domain.models import LoanRecord, ValidationResult, ValidationSummary
from mca_ledger.utils.parsing import is_blank

_UNSET_TEXT = {"", "Unknown"}


def split_header(rows: Sequence[Any]) -> Tuple[Sequence[Any], Sequence[Sequence[Any]]]:
    """
    Check the batch shape and separate the header row from the data rows.

    Raises:
        BatchStructureError: no rows, a row that is not a list of cells, or no data rows
        MissingColumnsError: a required column has no header cell
    """
    if rows is None or len(rows) == 0:
        raise BatchStructureError("No rows supplied; expected a header row and data rows")

    for number, row in enumerate(rows, start=1):
        if not isinstance(row, (list, tuple)):
            raise BatchStructureError(
                f"Row {number} is {type(row).__name__}, expected a list of cells"
            )

    header = rows[0]
    missing = [
        column.name.lower()
        for column in REQUIRED_COLUMNS
        if column >= len(header) or is_blank(header[column])
    ]
    if missing:
        raise MissingColumnsError(missing)

    data_rows = rows[1:]
    if not data_rows:
        raise BatchStructureError("Header row present but no data rows")
    return header, data_rows


def _completeness(record: LoanRecord) -> int:
    fields = (
        record.loan_number,
        record.loan_amount,
        record.client.name,
        record.client.industry_sector,
        record.client.city,
        record.client.state,
        record.client.email,
        record.lead.fico if record.lead.fico_reported else None,
        record.lead.avg_monthly_revenue,
        record.payout_date,
    )
    filled = sum(1 for value in fields if value and value not in _UNSET_TEXT)
    return round(filled / len(fields) * 100)


def _collected(record: LoanRecord) -> float:
    if record.status_calculation is not None:
        return record.status_calculation.total_received
    return sum(t.credit for t in record.transactions if t.is_valid_payment)


def validate_loan(record: LoanRecord) -> ValidationResult:
    """
    Check one loan for missing or inconsistent data.

    Errors make the loan unusable for reporting (identity, amount, contract date);
    warnings flag gaps in the borrower profile or suspicious figures.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not record.external_id:
        errors.append("Missing external id")
    if not record.loan_number:
        errors.append("Missing loan number")
    if record.loan_amount <= 0:
        errors.append("Invalid loan amount")
    if record.contract_date is None:
        errors.append("Missing contract date (no payout or first payment date)")

    if record.client.name in _UNSET_TEXT:
        warnings.append("Missing client name")
    if record.client.industry_sector == DEFAULTS["industry_sector"]:
        warnings.append("Missing industry sector")
    if record.client.date_founded is None:
        warnings.append("Missing business founding date")
    if not record.lead.fico_reported:
        warnings.append("Missing FICO score")
    if not record.lead.revenue:
        warnings.append("Missing revenue data")
    if not record.paydates:
        warnings.append("No payment schedule")

    collected = _collected(record)
    if record.loan_amount > 0 and collected > record.loan_amount:
        warnings.append(
            f"Collected amount {collected:.2f} exceeds loan amount {record.loan_amount:.2f}"
        )

    warnings.extend(record.data_quality_warnings)

    return ValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        completeness=_completeness(record),
    )


def summarize_validation(
    records: Sequence[LoanRecord],
    results: Sequence[ValidationResult],
    skipped_rows: int = 0,
) -> ValidationSummary:
    """Batch roll-up of validation results and processing failures"""
    failed = tuple(
        f"{record.external_id}/{record.loan_number}"
        for record in records
        if record.processing_error
    )
    valid = sum(1 for result in results if result.is_valid)
    return ValidationSummary(
        total_loans=len(records),
        valid_loans=valid,
        invalid_loans=len(results) - valid,
        loans_with_warnings=sum(1 for result in results if result.warnings),
        processing_errors=len(failed),
        failed_loans=failed,
        skipped_rows=skipped_rows,
    )
