"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProcessBatchRequest(BaseModel):
    """Request body for POST /v1/portfolio/process"""

    rows: List[List[Any]] = Field(..., description="Header row followed by data rows, one list of cells per row")
    reference_date: Optional[date] = Field(None, description="Date treated as today; defaults to the configured or current date")
    max_workers: Optional[int] = Field(None, ge=1, le=32, description="Worker threads for per-loan processing")
    time_budget_seconds: Optional[float] = Field(None, ge=0, description="Wall-clock budget for the batch")


class ValidateRowsRequest(BaseModel):
    """Request body for POST /v1/loans/validate"""

    rows: List[List[Any]] = Field(..., description="Header row followed by data rows")


class ValidationSummarySchema(BaseModel):
    total_loans: int
    valid_loans: int
    invalid_loans: int
    loans_with_warnings: int
    processing_errors: int
    failed_loans: List[str]
    skipped_rows: int


class ProcessBatchResponse(BaseModel):
    """Response for POST /v1/portfolio/process"""

    reference_date: date
    loans: List[Dict[str, Any]]
    portfolio: Dict[str, Any]
    validation: ValidationSummarySchema


class LoanValidationItem(BaseModel):
    """Validation outcome of a single loan"""

    external_id: str
    loan_number: str
    row_number: int
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    completeness: int


class ValidateRowsResponse(BaseModel):
    """Response for POST /v1/loans/validate"""

    loans: List[LoanValidationItem]
    summary: ValidationSummarySchema
