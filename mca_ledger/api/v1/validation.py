"""POST /v1/loans/validate - data-quality check of ledger rows without reconciliation"""

from fastapi import APIRouter, Depends

from mca_ledger.api.v1.schemas import (
    LoanValidationItem,
    ValidateRowsRequest,
    ValidateRowsResponse,
    ValidationSummarySchema,
)
from mca_ledger.api.dependencies import get_pipeline
from mca_ledger.domain.serialization import to_jsonable
from mca_ledger.pipeline import LoanPipeline

router = APIRouter()


@router.post("/loans/validate", response_model=ValidateRowsResponse)
def validate_loans(
    request_body: ValidateRowsRequest,
    pipeline: LoanPipeline = Depends(get_pipeline),
):
    """
    Validate every loan in a batch.

    Structural problems (no data rows, missing required columns) surface as 422
    through the application's domain exception handler.

    Returns:
        Per-loan errors, warnings and completeness, plus the batch summary
    """
    results, summary = pipeline.validate_rows(request_body.rows)

    items = [
        LoanValidationItem(
            external_id=record.external_id,
            loan_number=record.loan_number,
            row_number=record.row_number,
            is_valid=result.is_valid,
            errors=list(result.errors),
            warnings=list(result.warnings),
            completeness=result.completeness,
        )
        for record, result in results
    ]

    return ValidateRowsResponse(
        loans=items,
        summary=ValidationSummarySchema(**to_jsonable(summary)),
    )
