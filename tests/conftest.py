"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional
from fastapi.testclient import TestClient

from mca_ledger.api.dependencies import get_pipeline
from mca_ledger.api.main import create_app
from mca_ledger.domain.constants import ROW_WIDTH, Column
from mca_ledger.domain.ledger import LedgerClassifier
from mca_ledger.domain.models import LedgerTransaction, LoanRecord, ScheduledInstallment
from mca_ledger.pipeline import LoanPipeline


REFERENCE_DATE = date(2024, 6, 3)  # a Monday


@pytest.fixture
def reference_date() -> date:
    """Fixed 'today' so results never depend on the wall clock"""
    return REFERENCE_DATE


@pytest.fixture
def header_row() -> List[Any]:
    """Header row naming every mapped column"""
    row: List[Any] = [None] * ROW_WIDTH
    for column in Column:
        row[column] = column.name.replace("_", " ").title()
    return row


@pytest.fixture
def make_row() -> Callable[..., List[Any]]:
    """Build a raw row from column-name keyword arguments, e.g. make_row(loan_number="L-1")"""

    def _make(**cells: Any) -> List[Any]:
        row: List[Any] = [None] * ROW_WIDTH
        for name, value in cells.items():
            row[Column[name.upper()]] = value
        return row

    return _make


@pytest.fixture
def installment() -> Callable[..., ScheduledInstallment]:
    def _make(on: date, amount: float = 1000.0) -> ScheduledInstallment:
        return ScheduledInstallment(date=on, amount=amount)

    return _make


@pytest.fixture
def transaction() -> Callable[..., LedgerTransaction]:
    """Raw (unclassified) ledger entry"""

    def _make(
        on: date,
        credit: float = 0.0,
        debit: float = 0.0,
        type_name: str = "Debit Order",
        reference: str = "",
    ) -> LedgerTransaction:
        return LedgerTransaction(
            date=on,
            reference=reference,
            type_name=type_name,
            debit=debit,
            credit=credit,
            balance=0.0,
        )

    return _make


@pytest.fixture
def classify() -> Callable[[List[LedgerTransaction]], tuple]:
    """Classify raw entries with the default rule table"""
    classifier = LedgerClassifier()

    def _classify(transactions: List[LedgerTransaction]) -> tuple:
        return classifier.classify(transactions).transactions

    return _classify


@pytest.fixture
def weekly_schedule() -> Callable[..., List[ScheduledInstallment]]:
    """Weekly installments counting back from (and excluding) the reference date"""

    def _make(count: int, amount: float = 1000.0, first: Optional[date] = None) -> List[ScheduledInstallment]:
        start = first or REFERENCE_DATE - timedelta(weeks=count)
        return [
            ScheduledInstallment(date=start + timedelta(weeks=i), amount=amount)
            for i in range(count)
        ]

    return _make


@pytest.fixture
def make_loan() -> Callable[..., LoanRecord]:
    def _make(**overrides: Any) -> LoanRecord:
        fields: Dict[str, Any] = {
            "external_id": "EXT-1",
            "loan_number": "L-1",
            "loan_amount": 20000.0,
            "installment_amount": 1000.0,
            "payout_date": date(2024, 1, 2),
            "contract_date": date(2024, 1, 2),
        }
        fields.update(overrides)
        return LoanRecord(**fields)

    return _make


@pytest.fixture
def pipeline() -> LoanPipeline:
    return LoanPipeline()


@pytest.fixture
def client(pipeline: LoanPipeline) -> TestClient:
    """Create FastAPI test client with a default-configured pipeline"""
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    return TestClient(app)
