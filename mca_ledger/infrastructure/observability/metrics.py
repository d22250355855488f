"""Prometheus metrics for monitoring delinquency mix, risk levels, and batch performance"""

from prometheus_client import Counter, Histogram

from mca_ledger.domain.models import LoanRecord

# Loan outcome metrics
loans_processed_counter = Counter(
    "mca_loans_processed_total",
    "Loans reconciled, by delinquency status",
    ["status"],  # current | delinquent_1..3 | default | restructured | unprocessed
)

risk_level_counter = Counter(
    "mca_loans_risk_level_total",
    "Loans scored, by risk level",
    ["level"],  # Low | Medium | High | Critical
)

processing_error_counter = Counter(
    "mca_processing_errors_total",
    "Loans emitted with a processing error",
)

data_quality_warning_counter = Counter(
    "mca_data_quality_warnings_total",
    "Cells or rows defaulted, dropped or skipped during record building",
)

# Batch performance
batch_duration_histogram = Histogram(
    "mca_batch_duration_seconds",
    "Wall-clock time to process one batch",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan(record: LoanRecord) -> None:
    """Record per-loan outcome metrics"""
    status = record.status.value if record.status else "unprocessed"
    loans_processed_counter.labels(status=status).inc()

    if record.risk_level is not None:
        risk_level_counter.labels(level=record.risk_level.value).inc()

    if record.processing_error:
        processing_error_counter.inc()
