"""Immutable lookup tables and thresholds consumed by the reconciliation engine.

Every component takes its tables through the constructor, so alternate tables can be
injected in tests or from configuration without touching module state.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Tuple

from mca_ledger.domain.constants import TransactionCategory


@dataclass(frozen=True)
class ClassificationRule:
    """Substring pattern (lower-case) mapped to a transaction category"""

    pattern: str
    category: TransactionCategory


# Evaluated top to bottom, first hit wins
CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    # An NSF fee is a charge to the merchant, not a returned payment
    ClassificationRule("nsf fee", TransactionCategory.FEE),
    ClassificationRule("reversal", TransactionCategory.REVERSAL),
    ClassificationRule("nsf", TransactionCategory.REVERSAL),
    ClassificationRule("insufficient funds", TransactionCategory.REVERSAL),
    ClassificationRule("chargeback", TransactionCategory.REVERSAL),
    ClassificationRule("return", TransactionCategory.REVERSAL),
    ClassificationRule("refund", TransactionCategory.REVERSAL),
    ClassificationRule("origination", TransactionCategory.FEE),
    ClassificationRule("initiation", TransactionCategory.FEE),
    ClassificationRule("merchant fee", TransactionCategory.FEE),
    ClassificationRule("stamp tax", TransactionCategory.FEE),
    ClassificationRule("legal", TransactionCategory.FEE),
    ClassificationRule("fee", TransactionCategory.FEE),
    ClassificationRule("settlement", TransactionCategory.SETTLEMENT),
    ClassificationRule("write-off", TransactionCategory.SETTLEMENT),
    ClassificationRule("write off", TransactionCategory.SETTLEMENT),
    ClassificationRule("writeoff", TransactionCategory.SETTLEMENT),
    ClassificationRule("discount", TransactionCategory.SETTLEMENT),
    ClassificationRule("restructure", TransactionCategory.SETTLEMENT),
    ClassificationRule("loan payout", TransactionCategory.CAPITAL),
    ClassificationRule("cost of capital", TransactionCategory.CAPITAL),
    ClassificationRule("capital", TransactionCategory.CAPITAL),
    ClassificationRule("disbursement", TransactionCategory.CAPITAL),
)

# Display labels per category: (pattern, label), first hit wins
DETAIL_LABELS = MappingProxyType({
    TransactionCategory.REVERSAL: (
        ("nsf", "NSF"),
        ("insufficient funds", "NSF"),
        ("ach", "ACH Reversal"),
        ("chargeback", "Chargeback"),
        ("return", "Return"),
        ("refund", "Refund"),
        ("", "Reversal"),
    ),
    TransactionCategory.FEE: (
        ("origination", "Origination Fee"),
        ("initiation", "Initiation Fee"),
        ("merchant fee", "Merchant Fee"),
        ("nsf fee", "NSF Fee"),
        ("legal", "Legal Fee"),
        ("stamp tax", "Stamp Tax"),
        ("", "Fee"),
    ),
    TransactionCategory.SETTLEMENT: (
        ("write-off", "Write-off"),
        ("write off", "Write-off"),
        ("writeoff", "Write-off"),
        ("discount", "Settlement Discount"),
        ("renewal", "Settlement Renewal"),
        ("restructure", "Restructure"),
        ("", "Settlement"),
    ),
    TransactionCategory.CAPITAL: (
        ("loan payout", "Loan Payout"),
        ("cost of capital", "Cost of Capital"),
        ("", "Capital"),
    ),
})


@dataclass(frozen=True)
class IndustryTier:
    level: str
    score: int
    keywords: Tuple[str, ...]


INDUSTRY_TIERS: Tuple[IndustryTier, ...] = (
    IndustryTier(
        "Favorable",
        0,
        (
            "restaurants", "restaurant", "food service", "dining",
            "retail", "store", "shop",
            "medical", "health", "clinic", "doctor",
            "software", "saas", "technology", "tech",
            "education", "school", "training",
            "utilities", "electric", "water", "gas",
        ),
    ),
    IndustryTier(
        "Neutral",
        5,
        (
            "waste management", "sanitation",
            "hotel", "hospitality", "lodging",
            "government", "federal", "state",
            "manufacturing", "factory", "production",
            "laundry", "dry cleaning",
            "catering", "event",
            "auto repair", "mechanic", "automotive",
        ),
    ),
    IndustryTier(
        "Unfavorable",
        10,
        (
            "wholesale", "distributor",
            "staffing", "recruiting", "temp agency",
            "gas station", "fuel", "convenience store",
            "landscaping", "lawn care", "gardening",
            "telecommunications", "telecom", "phone",
            "towing", "tow truck",
            "food truck", "mobile food",
            "insurance", "broker",
            "construction", "builder", "contractor",
            "home health", "home care",
            "transportation", "trucking", "logistics",
            "e-commerce", "online retail", "amazon",
        ),
    ),
    IndustryTier(
        "Very Unfavorable",
        15,
        (
            "real estate", "property", "realtor",
            "property management", "rental",
            "advertising", "marketing", "agency",
            "media", "publishing", "broadcast",
            "entertainment", "music", "theater",
            "legal", "law", "attorney",
            "investment", "advisor", "financial planning",
        ),
    ),
    IndustryTier(
        "Restricted",
        20,
        (
            "accounting", "cpa", "bookkeeping",
            "non-profit", "charity", "foundation",
            "church", "religious", "ministry",
            "political", "campaign", "lobbying",
            "cannabis", "marijuana", "dispensary",
            "cryptocurrency", "crypto", "blockchain",
            "gambling", "casino", "betting",
            "adult", "escort",
        ),
    ),
)

NEUTRAL_INDUSTRY_TIER = INDUSTRY_TIERS[1]


@dataclass(frozen=True)
class MatchingConfig:
    """Thresholds for schedule matching and reversal linking"""

    max_days_for_match: int = 7
    amount_tolerance: float = 0.10
    catch_up_multiplier: float = 1.5
    recovery_multiplier: float = 2.0
    partial_min_ratio: float = 0.5
    partial_max_ratio: float = 0.9
    reversal_window_days: int = 10
    reversal_extended_window_days: int = 30


@dataclass(frozen=True)
class StatusConfig:
    partial_accumulation_threshold: float = 0.9


@dataclass(frozen=True)
class EngineConfig:
    """Everything the per-record pipeline needs, as one immutable value"""

    classification_rules: Tuple[ClassificationRule, ...] = CLASSIFICATION_RULES
    industry_tiers: Tuple[IndustryTier, ...] = INDUSTRY_TIERS
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    status: StatusConfig = field(default_factory=StatusConfig)


DEFAULT_ENGINE_CONFIG = EngineConfig()
