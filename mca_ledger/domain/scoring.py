"""Risk scoring engine - weighted, explainable 0-100 risk score per loan"""

import re
from datetime import date
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from mca_ledger.domain.constants import RiskLevel
from mca_ledger.domain.models import (
    LeadProfile,
    LoanRecord,
    RiskAssessment,
    RiskFactor,
    StatusCalculation,
)
from mca_ledger.domain.rules import INDUSTRY_TIERS, NEUTRAL_INDUSTRY_TIER, IndustryTier
from mca_ledger.domain.collection import payment_gaps
from mca_ledger.utils.date_utils import day_diff, fractional_years

MAX_SCORE = 100

# Sub-score caps
PAYMENT_HISTORY_CAP = 30
CREDIT_SCORE_CAP = 20
DEBT_RATIO_CAP = 25
BUSINESS_AGE_CAP = 15
INDUSTRY_CAP = 20
BANKING_HEALTH_CAP = 15
CONTRACT_PERFORMANCE_CAP = 10

POINTS_PER_MISSED_PAYMENT = 7.5
SLOW_PAYMENT_BONUS = 5
SLOW_PAYMENT_FACTOR = 1.5
FIRST_PAYMENT_GRACE_DAYS = 7
NO_FIRST_PAYMENT_PENALTY = 5

# Expected days between payments per stated frequency
CADENCE_DAYS = {
    "daily": 1,
    "weekly": 7,
    "biweekly": 14,
    "semimonthly": 15,
    "monthly": 30,
}
DEFAULT_CADENCE_DAYS = 30

# (exclusive upper bound, points); first band that fits wins
FICO_BANDS = ((500, 20), (550, 17), (600, 15), (650, 10), (700, 5), (750, 2))
BUSINESS_AGE_BANDS = ((0.5, 15), (1, 12), (2, 10), (3, 7), (5, 3))
# (exclusive lower bound, points)
DEBT_RATIO_BANDS = ((0.5, 25), (0.3, 20), (0.15, 15), (0.05, 10), (0.01, 5))
NO_REVENUE_DEBT_SCORE = 20
NSF_BANDS = ((5, 7), (3, 5), (1, 3), (0, 1))
NEGATIVE_DAY_BANDS = ((10, 5), (5, 3), (2, 2), (0, 1))
# (exclusive upper bound on average daily balance, points)
DAILY_BALANCE_BANDS = ((500, 3), (1000, 2), (2500, 1))
COLLECTION_RATE_BANDS = ((50, 5), (75, 3), (90, 1))

LEVEL_BANDS = ((27, RiskLevel.LOW), (55, RiskLevel.MEDIUM), (82, RiskLevel.HIGH))

LEVEL_RECOMMENDATIONS = {
    RiskLevel.LOW: "Low risk - maintain standard monitoring",
    RiskLevel.MEDIUM: "Medium risk - increase monitoring frequency",
    RiskLevel.HIGH: "High risk - daily monitoring recommended",
    RiskLevel.CRITICAL: "Critical risk - immediate intervention needed",
}
MAX_RECOMMENDATIONS = 3
TOP_FACTOR_COUNT = 3


def _below(value: float, bands: Sequence[Tuple[float, float]]) -> float:
    for bound, points in bands:
        if value < bound:
            return points
    return 0


def _above(value: float, bands: Sequence[Tuple[float, float]]) -> float:
    for bound, points in bands:
        if value > bound:
            return points
    return 0


def expected_cadence_days(payment_frequency: str) -> int:
    key = re.sub(r"[\s_-]", "", (payment_frequency or "").lower())
    return CADENCE_DAYS.get(key, DEFAULT_CADENCE_DAYS)


def risk_level_for(score: float) -> RiskLevel:
    for bound, level in LEVEL_BANDS:
        if score <= bound:
            return level
    return RiskLevel.CRITICAL


def calculate_dscr(lead: LeadProfile) -> float:
    """
    Debt service coverage ratio from the underwriting snapshot.

    Returns:
        revenue / debt service; 10 when there is no debt service, 0 when there is
        debt but no revenue
    """
    debt_service = lead.avg_mca_debits
    if debt_service <= 0:
        return 10.0
    if lead.revenue <= 0:
        return 0.0
    return lead.revenue / debt_service


def collection_rate_percent(status: StatusCalculation) -> Optional[float]:
    """Collected share of the amount due so far, capped at 100; None before anything is due"""
    if status.total_expected == 0 or status.total_expected_amount <= 0:
        return None
    return min(100.0, status.total_received / status.total_expected_amount * 100)


class RiskScorer:
    """Sums seven capped sub-scores into a 0-100 risk score"""

    def __init__(self, industry_tiers: Sequence[IndustryTier] = INDUSTRY_TIERS):
        keywords = [
            (keyword, tier) for tier in industry_tiers for keyword in tier.keywords
        ]
        # Longest keyword first so "gas station" beats "gas"; sort is stable per tier order
        keywords.sort(key=lambda pair: -len(pair[0]))
        self._industry_patterns: List[Tuple[Pattern, str, IndustryTier]] = [
            (re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])"), keyword, tier)
            for keyword, tier in keywords
        ]

    def industry_tier(self, sector: str, subsector: str) -> Tuple[IndustryTier, Optional[str]]:
        """Tier of the most specific keyword found in sector/subsector, neutral when none"""
        text = f"{sector or ''} {subsector or ''}".lower()
        for pattern, keyword, tier in self._industry_patterns:
            if pattern.search(text):
                return tier, keyword
        return NEUTRAL_INDUSTRY_TIER, None

    def payment_history(self, record: LoanRecord, status: StatusCalculation) -> RiskFactor:
        missed = status.missed_payments
        score = min(PAYMENT_HISTORY_CAP, missed * POINTS_PER_MISSED_PAYMENT)

        gaps = payment_gaps(status.actual_payments)
        details = f"{missed} missed payments"
        if gaps:
            average_gap = sum(gaps) / len(gaps)
            cadence = expected_cadence_days(record.payment_frequency)
            if average_gap > cadence * SLOW_PAYMENT_FACTOR:
                score = min(PAYMENT_HISTORY_CAP, score + SLOW_PAYMENT_BONUS)
                details += f", paying every {average_gap:.1f} days vs {cadence} expected"

        return RiskFactor("payment_history", "Payment History", score, PAYMENT_HISTORY_CAP, details)

    def credit_score(self, record: LoanRecord) -> RiskFactor:
        fico = record.lead.fico
        details = f"FICO: {fico}" if record.lead.fico_reported else f"FICO: {fico} (default)"
        return RiskFactor(
            "credit_score", "Credit Score", _below(fico, FICO_BANDS), CREDIT_SCORE_CAP, details
        )

    def debt_ratio(self, record: LoanRecord) -> RiskFactor:
        revenue = record.lead.revenue
        debt = record.lead.avg_mca_debits
        if revenue > 0:
            ratio = debt / revenue
            score = _above(ratio, DEBT_RATIO_BANDS)
            details = f"Ratio: {ratio * 100:.1f}%"
        else:
            # Missing revenue data is treated as high risk
            score = NO_REVENUE_DEBT_SCORE
            details = "Ratio: N/A (no revenue data)"
        return RiskFactor("debt_ratio", "Debt/Revenue Ratio", score, DEBT_RATIO_CAP, details)

    def business_age(self, record: LoanRecord, reference_date: date) -> RiskFactor:
        founded = record.client.date_founded
        if founded is None:
            return RiskFactor(
                "business_age",
                "Business Age",
                BUSINESS_AGE_BANDS[0][1],
                BUSINESS_AGE_CAP,
                "Unknown founding date",
            )
        years = fractional_years(founded, reference_date)
        return RiskFactor(
            "business_age",
            "Business Age",
            _below(years, BUSINESS_AGE_BANDS),
            BUSINESS_AGE_CAP,
            f"{years:.1f} years",
        )

    def industry(self, record: LoanRecord) -> RiskFactor:
        tier, keyword = self.industry_tier(
            record.client.industry_sector, record.client.industry_subsector
        )
        matched = keyword or record.client.industry_sector or "Unknown"
        return RiskFactor(
            "industry_risk",
            "Industry Risk",
            min(INDUSTRY_CAP, tier.score),
            INDUSTRY_CAP,
            f"{tier.level} - {matched}",
        )

    def banking_health(self, record: LoanRecord) -> RiskFactor:
        lead = record.lead
        score = (
            _above(lead.avg_nsfs, NSF_BANDS)
            + _above(lead.avg_negative_days, NEGATIVE_DAY_BANDS)
            + _below(lead.avg_daily_balance, DAILY_BALANCE_BANDS)
        )
        return RiskFactor(
            "banking_health",
            "Banking Health",
            min(BANKING_HEALTH_CAP, score),
            BANKING_HEALTH_CAP,
            f"NSFs: {lead.avg_nsfs:g}, Neg Days: {lead.avg_negative_days:g}",
        )

    def contract_performance(
        self, record: LoanRecord, status: StatusCalculation, reference_date: date
    ) -> RiskFactor:
        score = 0
        if record.paydates and not status.actual_payments:
            overdue = day_diff(record.paydates[0].date, reference_date)
            if overdue > FIRST_PAYMENT_GRACE_DAYS:
                score += NO_FIRST_PAYMENT_PENALTY

        rate = collection_rate_percent(status)
        if rate is None:
            details = "Collection: n/a (nothing due yet)"
        else:
            score += _below(rate, COLLECTION_RATE_BANDS)
            details = f"Collection: {rate:.0f}%"

        return RiskFactor(
            "contract_performance",
            "Contract Performance",
            min(CONTRACT_PERFORMANCE_CAP, score),
            CONTRACT_PERFORMANCE_CAP,
            details,
        )

    def assess(
        self, record: LoanRecord, status: StatusCalculation, reference_date: date
    ) -> RiskAssessment:
        """
        Score a loan after matching and status classification.

        Requirements:
        - Every sub-score stays within [0, its cap]
        - Total is capped at 100 and mapped to a level: <=27 Low, <=55 Medium,
          <=82 High, else Critical
        - Top factors are the non-zero sub-scores with the highest share of their cap
        """
        factors = (
            self.payment_history(record, status),
            self.credit_score(record),
            self.debt_ratio(record),
            self.business_age(record, reference_date),
            self.industry(record),
            self.banking_health(record),
            self.contract_performance(record, status, reference_date),
        )
        breakdown: Dict[str, RiskFactor] = {factor.key: factor for factor in factors}

        score = min(MAX_SCORE, sum(factor.score for factor in factors))
        level = risk_level_for(score)

        top_factors = sorted(
            (factor for factor in factors if factor.score > 0),
            key=lambda factor: factor.fraction_of_max,
            reverse=True,
        )[:TOP_FACTOR_COUNT]

        return RiskAssessment(
            score=score,
            level=level,
            breakdown=breakdown,
            top_factors=tuple(top_factors),
            recommendation=build_recommendation(level, breakdown),
        )


def build_recommendation(level: RiskLevel, breakdown: Dict[str, RiskFactor]) -> str:
    """Overall level sentence first, then the most pressing factor-specific ones"""
    sentences = [LEVEL_RECOMMENDATIONS[level]]

    payment = breakdown["payment_history"].score
    if payment > 15:
        sentences.append("Immediate collection action required - multiple missed payments")
    elif payment > 7:
        sentences.append("Follow up on missed payment(s) immediately")

    if breakdown["credit_score"].score > 15:
        sentences.append("Very low FICO score - high default risk")

    debt = breakdown["debt_ratio"].score
    if debt > 20:
        sentences.append("Extremely high debt burden - monitor closely")
    elif debt > 15:
        sentences.append("High debt-to-revenue ratio - payment capacity concern")

    if breakdown["business_age"].score > 12:
        sentences.append("Very young business - higher failure risk")

    if breakdown["industry_risk"].score >= 15:
        sentences.append("High-risk industry - requires close monitoring")

    if breakdown["banking_health"].score > 10:
        sentences.append("Poor banking behavior - NSF and negative balance history")

    return "; ".join(sentences[:MAX_RECOMMENDATIONS])
