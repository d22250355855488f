"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, Optional, Tuple

from mca_ledger.domain.constants import (
    LoanStatus,
    MatchStatus,
    RiskLevel,
    TransactionCategory,
)


@dataclass(frozen=True)
class ScheduledInstallment:
    """Single expected payment from the loan's schedule"""

    date: date
    amount: float
    row_number: int = 0


@dataclass(frozen=True)
class LedgerTransaction:
    """Bank ledger entry, plus the flags assigned by the ledger classifier"""

    date: date
    reference: str
    type_name: str
    debit: float
    credit: float
    balance: float
    type_id: Optional[str] = None
    row_number: int = 0
    category: Optional[TransactionCategory] = None
    detail_type: Optional[str] = None
    is_reversal: bool = False
    is_reversed: bool = False
    reversal_of: Optional[int] = None  # index of the voided entry
    reversed_by: Optional[int] = None
    net_amount: float = 0.0

    @property
    def is_valid_payment(self) -> bool:
        return (
            self.category == TransactionCategory.PAYMENT
            and not self.is_reversed
            and self.credit > 0
        )


@dataclass(frozen=True)
class ClientProfile:
    """Merchant (borrower) details"""

    client_id: Optional[str] = None
    name: str = "Unknown"
    industry_sector: str = "Unknown"
    industry_subsector: str = "General"
    date_founded: Optional[date] = None
    address_line_1: str = ""
    address_line_2: str = ""
    address_line_3: str = ""
    city: str = "Unknown"
    state: str = "Unknown"
    country: str = "United States"
    zip_code: str = ""
    email: str = ""
    primary_no: str = ""


@dataclass(frozen=True)
class LeadProfile:
    """Underwriting snapshot captured when the advance was sold"""

    lead_id: Optional[str] = None
    fico: int = 650
    fico_reported: bool = False
    avg_monthly_revenue: float = 0.0
    avg_revenue: float = 0.0
    avg_mca_debits: float = 0.0
    avg_daily_balance: float = 0.0
    avg_nsfs: float = 0.0
    avg_negative_days: float = 0.0
    avg_num_deposits: float = 0.0
    avg_num_credits: float = 0.0
    avg_deposits: float = 0.0
    avg_credits: float = 0.0
    created_on: Optional[date] = None
    closed_date: Optional[date] = None
    sell_rate: float = 0.0
    underwriter: Optional[str] = None
    salesperson: Optional[str] = None
    pod_leader: Optional[str] = None

    @property
    def revenue(self) -> float:
        return self.avg_monthly_revenue or self.avg_revenue


@dataclass(frozen=True)
class TransactionSummary:
    total_count: int = 0
    payment_count: int = 0
    reversal_count: int = 0
    fee_count: int = 0
    settlement_count: int = 0
    capital_count: int = 0
    reversed_payment_count: int = 0
    total_payments: float = 0.0
    total_reversals: float = 0.0
    total_fees: float = 0.0
    settlement_amount: float = 0.0
    reversed_amount: float = 0.0
    net_payments: float = 0.0
    payment_success_rate: float = 100.0


@dataclass(frozen=True)
class PaymentMatch:
    """Reconciliation outcome for one installment, or one unmatched payment (extra)"""

    status: MatchStatus
    installment: Optional[ScheduledInstallment]
    transaction: Optional[LedgerTransaction]
    transaction_index: Optional[int]
    expected_amount: float
    actual_amount: float
    variance: float
    days_late: int = 0
    recovery_type: Optional[str] = None

    @property
    def match_date(self) -> date:
        if self.installment is not None:
            return self.installment.date
        return self.transaction.date


@dataclass(frozen=True)
class CatchUpPayment:
    """Single payment large enough to cover several installments"""

    transaction_index: int
    date: date
    amount: float
    periods_covered: int
    type: str  # "recovery" or "catch-up"
    expected_amount: float
    overpayment: float
    installments_claimed: int = 0
    transaction_type: str = ""


@dataclass(frozen=True)
class MatchResult:
    matches: Tuple[PaymentMatch, ...]
    used_transactions: FrozenSet[int]
    catch_ups: Tuple[CatchUpPayment, ...] = ()


@dataclass(frozen=True)
class StatusCalculation:
    """Delinquency classification with the inputs that produced it"""

    reference_date: date
    expected_installments: Tuple[ScheduledInstallment, ...]
    actual_payments: Tuple[LedgerTransaction, ...]
    total_expected: int
    total_expected_amount: float
    total_received: float
    installments_satisfied: int
    missed_payments: int
    is_restructured: bool
    restructure_reason: Optional[str]
    status: LoanStatus
    explanation: str
    days_delinquent: int = 0


@dataclass(frozen=True)
class CollectionMetrics:
    expected_to_date: float = 0.0
    collected_to_date: float = 0.0
    collection_rate: float = 0.0
    outstanding: float = 0.0
    on_time_payment_rate: float = 0.0
    avg_days_late: float = 0.0
    recovery_rate: float = 0.0
    projected_shortfall: float = 0.0


@dataclass(frozen=True)
class PaymentVelocity:
    avg_days_between_payments: float = 0.0
    consistency: float = 0.0
    trend: str = "stable"  # stable | accelerating | decelerating
    recent_velocity: float = 0.0
    historical_velocity: float = 0.0


@dataclass(frozen=True)
class RiskFactor:
    """One capped sub-score of the risk assessment"""

    key: str
    label: str
    score: float
    max_score: float
    details: str

    @property
    def fraction_of_max(self) -> float:
        return self.score / self.max_score if self.max_score else 0.0


@dataclass(frozen=True)
class RiskAssessment:
    score: float
    level: RiskLevel
    breakdown: Dict[str, RiskFactor]
    top_factors: Tuple[RiskFactor, ...]
    recommendation: str


@dataclass(frozen=True)
class PortfolioPosition:
    """Percentile ranks (0-100) of a loan within its batch"""

    risk_percentile: float
    size_percentile: float
    performance_percentile: float


@dataclass(frozen=True)
class LoanRecord:
    """One merchant cash-advance loan and everything derived from its ledger"""

    external_id: str
    loan_number: str
    row_number: int = 0

    # Loan economics
    active: bool = False
    loan_amount: float = 0.0
    amount_sold: float = 0.0
    contract_balance: float = 0.0
    remaining_amount: float = 0.0
    installment_amount: float = 1000.0
    last_installment_amount: float = 0.0
    payment_frequency: str = "Weekly"
    loan_term: Optional[int] = None
    contract_interest: float = 0.0
    origination_fee: float = 0.0
    state: str = "Unknown"
    progress: float = 0.0

    # Key dates
    payout_date: Optional[date] = None
    first_payment_date: Optional[date] = None
    end_date: Optional[date] = None
    compound_date: Optional[date] = None
    contract_date: Optional[date] = None

    # Overdue and write-off figures as reported by the servicer
    days_overdue: int = 0
    days_overdue_mpf: int = 0
    days_overdue_on_write_off: int = 0
    amount_overdue_on_write_off: float = 0.0
    amount_overdue: float = 0.0
    is_restructured: bool = False

    client: ClientProfile = field(default_factory=ClientProfile)
    lead: LeadProfile = field(default_factory=LeadProfile)
    paydates: Tuple[ScheduledInstallment, ...] = ()
    transactions: Tuple[LedgerTransaction, ...] = ()
    data_quality_warnings: Tuple[str, ...] = ()

    # Derived, written once per processing pass
    transaction_summary: Optional[TransactionSummary] = None
    payment_matching: Optional[Tuple[PaymentMatch, ...]] = None
    status_calculation: Optional[StatusCalculation] = None
    status: Optional[LoanStatus] = None
    missed_payments: Optional[int] = None
    days_delinquent: Optional[int] = None
    catch_up_payments: Optional[Tuple[CatchUpPayment, ...]] = None
    collection_metrics: Optional[CollectionMetrics] = None
    payment_velocity: Optional[PaymentVelocity] = None
    risk_assessment: Optional[RiskAssessment] = None
    dscr: Optional[float] = None
    portfolio_position: Optional[PortfolioPosition] = None
    processing_error: Optional[str] = None

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.external_id, self.loan_number)

    @property
    def risk_score(self) -> Optional[float]:
        return self.risk_assessment.score if self.risk_assessment else None

    @property
    def risk_level(self) -> Optional[RiskLevel]:
        return self.risk_assessment.level if self.risk_assessment else None

    @property
    def risk_breakdown(self) -> Optional[Dict[str, RiskFactor]]:
        return self.risk_assessment.breakdown if self.risk_assessment else None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    completeness: int = 0


@dataclass(frozen=True)
class ValidationSummary:
    """Batch-level error accounting"""

    total_loans: int = 0
    valid_loans: int = 0
    invalid_loans: int = 0
    loans_with_warnings: int = 0
    processing_errors: int = 0
    failed_loans: Tuple[str, ...] = ()
    skipped_rows: int = 0


@dataclass(frozen=True)
class StatusBucket:
    count: int = 0
    amount: float = 0.0
    percentage: float = 0.0


@dataclass(frozen=True)
class RiskLeader:
    loan_number: str
    merchant_name: str
    risk_score: float
    status: Optional[LoanStatus]
    amount: float


@dataclass(frozen=True)
class FactorFrequency:
    factor: str
    frequency: int
    average_score: float


@dataclass(frozen=True)
class CollectionAnalysis:
    total_expected: float = 0.0
    total_collected: float = 0.0
    collection_rate: float = 0.0
    on_time_payment_rate: float = 0.0
    average_days_delinquent: float = 0.0
    loans_with_catch_ups: int = 0
    total_catch_up_amount: float = 0.0


@dataclass(frozen=True)
class PortfolioMetrics:
    """Aggregates over one batch; rebuilt on every run"""

    total_loans: int = 0
    total_amount: float = 0.0
    total_collected: float = 0.0
    total_outstanding: float = 0.0
    average_risk_score: float = 0.0
    collection_rate: float = 0.0
    default_rate: float = 0.0
    processing_errors: int = 0
    status_distribution: Dict[str, int] = field(default_factory=dict)
    risk_distribution: Dict[str, int] = field(default_factory=dict)
    industry_distribution: Dict[str, int] = field(default_factory=dict)
    cohort_distribution: Dict[str, int] = field(default_factory=dict)
    status_breakdown: Dict[str, StatusBucket] = field(default_factory=dict)
    highest_risk_loans: Tuple[RiskLeader, ...] = ()
    top_risk_factors: Tuple[FactorFrequency, ...] = ()
    collection_analysis: CollectionAnalysis = field(default_factory=CollectionAnalysis)


@dataclass(frozen=True)
class BatchResult:
    loans: Tuple[LoanRecord, ...]
    portfolio: PortfolioMetrics
    validation: ValidationSummary
