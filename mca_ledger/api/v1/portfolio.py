"""POST /v1/portfolio/process - reconcile and score a batch of ledger rows"""

import time
import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request

from mca_ledger.api.v1.schemas import ProcessBatchRequest, ProcessBatchResponse, ValidationSummarySchema
from mca_ledger.api.dependencies import get_pipeline, get_request_id
from mca_ledger.config import settings
from mca_ledger.domain.exceptions import BatchStructureError
from mca_ledger.domain.serialization import to_jsonable
from mca_ledger.infrastructure.observability.logging import log_batch_processed
from mca_ledger.infrastructure.observability.metrics import (
    batch_duration_histogram,
    data_quality_warning_counter,
    record_loan,
)
from mca_ledger.pipeline import LoanPipeline

router = APIRouter()


@router.post("/portfolio/process", response_model=ProcessBatchResponse)
def process_portfolio(
    request_body: ProcessBatchRequest,
    request: Request,
    pipeline: LoanPipeline = Depends(get_pipeline),
):
    """
    Reconcile a full ledger export.

    Flow:
    1. Check batch structure (header with required columns, at least one data row)
    2. Group rows into loans, reconcile schedule against ledger, classify and score
    3. Aggregate portfolio metrics and percentile ranks
    4. Record metrics and return every loan, including ones that failed processing
    """
    start_time = time.time()
    request_id = get_request_id(request)
    reference_date = request_body.reference_date or settings.reference_date or date.today()

    try:
        result = pipeline.process_batch(
            request_body.rows,
            reference_date=reference_date,
            max_workers=(
                request_body.max_workers
                if request_body.max_workers is not None
                else settings.max_workers
            ),
            time_budget_seconds=(
                request_body.time_budget_seconds
                if request_body.time_budget_seconds is not None
                else settings.batch_time_budget_seconds
            ),
        )

    except BatchStructureError as e:
        logging.warning(f"Rejected batch: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # Record metrics and logs
    duration = time.time() - start_time
    batch_duration_histogram.observe(duration)
    for loan in result.loans:
        record_loan(loan)
    warning_count = sum(len(loan.data_quality_warnings) for loan in result.loans)
    data_quality_warning_counter.inc(warning_count + result.validation.skipped_rows)
    log_batch_processed(
        loan_count=len(result.loans),
        processing_errors=result.validation.processing_errors,
        skipped_rows=result.validation.skipped_rows,
        reference_date=reference_date.isoformat(),
        duration_ms=duration * 1000,
        request_id=request_id,
    )

    return ProcessBatchResponse(
        reference_date=reference_date,
        loans=[to_jsonable(loan) for loan in result.loans],
        portfolio=to_jsonable(result.portfolio),
        validation=ValidationSummarySchema(**to_jsonable(result.validation)),
    )
