"""Portfolio aggregation - batch-level distributions and per-loan percentile ranks"""

from bisect import bisect_left
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from mca_ledger.domain.constants import LoanStatus, RiskLevel
from mca_ledger.domain.models import (
    CollectionAnalysis,
    FactorFrequency,
    LoanRecord,
    PortfolioMetrics,
    PortfolioPosition,
    RiskLeader,
    StatusBucket,
)
from mca_ledger.utils.date_utils import cohort_key

HIGH_RISK_THRESHOLD = 70
HIGHEST_RISK_LIMIT = 5
TOP_FACTOR_LIMIT = 5
UNKNOWN = "unknown"


def percentile_rank(sorted_values: Sequence[float], value: float) -> float:
    """Share of the batch (0-100) strictly below ``value``; ``sorted_values`` must be ascending"""
    if not sorted_values:
        return 0.0
    return bisect_left(sorted_values, value) / len(sorted_values) * 100


def _collection_rate(record: LoanRecord) -> float:
    return record.collection_metrics.collection_rate if record.collection_metrics else 0.0


def assign_positions(records: Sequence[LoanRecord]) -> Tuple[LoanRecord, ...]:
    """
    Attach each processed loan's percentile ranks within the batch.

    Loans that failed processing carry no score and get no position; they are also
    left out of the ranking arrays.
    """
    scored = [r for r in records if r.risk_assessment is not None]
    risk_values = sorted(r.risk_score for r in scored)
    size_values = sorted(r.loan_amount for r in scored)
    performance_values = sorted(_collection_rate(r) for r in scored)

    positioned = []
    for record in records:
        if record.risk_assessment is None:
            positioned.append(record)
            continue
        position = PortfolioPosition(
            risk_percentile=percentile_rank(risk_values, record.risk_score),
            size_percentile=percentile_rank(size_values, record.loan_amount),
            performance_percentile=percentile_rank(performance_values, _collection_rate(record)),
        )
        positioned.append(replace(record, portfolio_position=position))
    return tuple(positioned)


def build_portfolio_metrics(records: Sequence[LoanRecord]) -> PortfolioMetrics:
    """
    Fold a whole batch into portfolio metrics in a single pass.

    Rates are percentages. The collection rate is collected over total loan amount;
    the default rate is the share of loans in default.
    """
    total = len(records)
    total_amount = 0.0
    total_collected = 0.0
    total_outstanding = 0.0
    total_expected = 0.0
    risk_sum = 0.0
    scored = 0
    errors = 0
    delinquency_days = 0
    on_time_rates: List[float] = []
    catch_up_loans = 0
    catch_up_amount = 0.0

    status_counts: Counter = Counter()
    status_amounts: Dict[str, float] = defaultdict(float)
    risk_counts: Counter = Counter({level.value: 0 for level in RiskLevel})
    industry_counts: Counter = Counter()
    cohort_counts: Counter = Counter()
    factor_counts: Counter = Counter()
    factor_scores: Dict[str, float] = defaultdict(float)

    for record in records:
        total_amount += record.loan_amount
        status = record.status.value if record.status else UNKNOWN
        status_counts[status] += 1
        status_amounts[status] += record.loan_amount
        industry_counts[record.client.industry_sector] += 1
        cohort = cohort_key(record.contract_date) if record.contract_date else UNKNOWN
        cohort_counts[cohort] += 1

        if record.processing_error:
            errors += 1

        metrics = record.collection_metrics
        if metrics is not None:
            total_collected += metrics.collected_to_date
            total_outstanding += metrics.outstanding
            total_expected += metrics.expected_to_date
            on_time_rates.append(metrics.on_time_payment_rate)

        if record.days_delinquent:
            delinquency_days += record.days_delinquent

        if record.catch_up_payments:
            catch_up_loans += 1
            catch_up_amount += sum(c.amount for c in record.catch_up_payments)

        assessment = record.risk_assessment
        if assessment is not None:
            scored += 1
            risk_sum += assessment.score
            risk_counts[assessment.level.value] += 1
            for factor in assessment.top_factors:
                factor_counts[factor.label] += 1
                factor_scores[factor.label] += factor.score

    status_breakdown = {
        status.value: StatusBucket(
            count=status_counts[status.value],
            amount=status_amounts[status.value],
            percentage=status_counts[status.value] / total * 100 if total else 0.0,
        )
        for status in LoanStatus
    }

    leaders = sorted(
        (r for r in records if r.risk_score is not None and r.risk_score > HIGH_RISK_THRESHOLD),
        key=lambda r: r.risk_score,
        reverse=True,
    )[:HIGHEST_RISK_LIMIT]

    top_factors = tuple(
        FactorFrequency(
            factor=label,
            frequency=count,
            average_score=factor_scores[label] / count,
        )
        for label, count in sorted(factor_counts.items(), key=lambda item: (-item[1], item[0]))[
            :TOP_FACTOR_LIMIT
        ]
    )

    return PortfolioMetrics(
        total_loans=total,
        total_amount=total_amount,
        total_collected=total_collected,
        total_outstanding=total_outstanding,
        average_risk_score=risk_sum / scored if scored else 0.0,
        collection_rate=total_collected / total_amount * 100 if total_amount else 0.0,
        default_rate=status_counts[LoanStatus.DEFAULT.value] / total * 100 if total else 0.0,
        processing_errors=errors,
        status_distribution=dict(sorted(status_counts.items())),
        risk_distribution=dict(risk_counts),
        industry_distribution=dict(sorted(industry_counts.items())),
        cohort_distribution=dict(sorted(cohort_counts.items())),
        status_breakdown=status_breakdown,
        highest_risk_loans=tuple(
            RiskLeader(
                loan_number=r.loan_number,
                merchant_name=r.client.name,
                risk_score=r.risk_score,
                status=r.status,
                amount=r.loan_amount,
            )
            for r in leaders
        ),
        top_risk_factors=top_factors,
        collection_analysis=CollectionAnalysis(
            total_expected=total_expected,
            total_collected=total_collected,
            collection_rate=total_collected / total_expected * 100 if total_expected else 0.0,
            on_time_payment_rate=(
                sum(on_time_rates) / len(on_time_rates) if on_time_rates else 0.0
            ),
            average_days_delinquent=delinquency_days / total if total else 0.0,
            loans_with_catch_ups=catch_up_loans,
            total_catch_up_amount=catch_up_amount,
        ),
    )


def aggregate_portfolio(
    records: Sequence[LoanRecord],
) -> Tuple[Tuple[LoanRecord, ...], PortfolioMetrics]:
    """Rank every loan in the batch and compute the batch metrics; rebuilt from scratch each call"""
    positioned = assign_positions(records)
    return positioned, build_portfolio_metrics(positioned)
