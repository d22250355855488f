"""Unit tests for grouping ledger export rows into loan records"""

from datetime import date

import pytest

from mca_ledger.domain.records import RecordBuilder


@pytest.fixture
def builder() -> RecordBuilder:
    return RecordBuilder()


def test_header_and_continuation_rows_form_one_loan(builder, make_row):
    """Header row starts a loan; rows with no identity continue it"""
    rows = [
        make_row(
            external_id="EXT-1",
            loan_number="L-1",
            loan_amount=15000,
            client_id="C-1",
            installment_amount=500,
            paydate_date="2024-01-08",
            paydate_amount=500,
            trans_date="2024-01-08",
            trans_type_name="Debit Order",
            trans_credit=500,
        ),
        make_row(paydate_date="2024-01-15", paydate_amount=500),
        make_row(trans_date="2024-01-15", trans_type_name="Debit Order", trans_credit=500),
    ]

    grouped = builder.build(rows)

    assert len(grouped.records) == 1
    record = grouped.records[0]
    assert record.identity == ("EXT-1", "L-1")
    assert record.row_number == 2
    assert record.loan_amount == 15000.0
    assert [p.date for p in record.paydates] == [date(2024, 1, 8), date(2024, 1, 15)]
    assert [t.credit for t in record.transactions] == [500.0, 500.0]
    assert record.transactions[1].row_number == 4


def test_rows_split_between_loans(builder, make_row):
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1", paydate_date="2024-01-08"),
        make_row(paydate_date="2024-01-15"),
        make_row(external_id="EXT-2", loan_number="L-2", paydate_date="2024-02-01"),
        make_row(paydate_date="2024-02-08"),
    ]

    grouped = builder.build(rows)

    assert [r.loan_number for r in grouped.records] == ["L-1", "L-2"]
    assert [len(r.paydates) for r in grouped.records] == [2, 2]


def test_rows_with_single_identity_cell_are_skipped(builder, make_row):
    """A row with only one of external id / loan number belongs to no loan"""
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1"),
        make_row(external_id="EXT-9", paydate_date="2024-01-08"),
        make_row(loan_number="L-9"),
    ]

    grouped = builder.build(rows)

    assert len(grouped.records) == 1
    assert grouped.records[0].paydates == ()
    assert grouped.skipped_rows == 2
    assert "Row 3" in grouped.batch_warnings[0]


def test_continuation_before_any_header_is_skipped(builder, make_row):
    rows = [
        make_row(paydate_date="2024-01-08"),
        make_row(external_id="EXT-1", loan_number="L-1"),
    ]

    grouped = builder.build(rows)

    assert len(grouped.records) == 1
    assert grouped.skipped_rows == 1


def test_blank_rows_are_ignored_silently(builder, make_row):
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1"),
        make_row(),
        make_row(paydate_date="2024-01-08"),
    ]

    grouped = builder.build(rows)

    assert grouped.skipped_rows == 0
    assert len(grouped.records[0].paydates) == 1


def test_duplicate_header_folds_into_first_record(builder, make_row):
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1", loan_amount=10000, paydate_date="2024-01-08"),
        make_row(external_id="EXT-1", loan_number="L-1", loan_amount=99999, paydate_date="2024-01-15"),
    ]

    grouped = builder.build(rows)

    assert len(grouped.records) == 1
    record = grouped.records[0]
    assert record.loan_amount == 10000.0
    assert len(record.paydates) == 2
    assert any("duplicate header" in w for w in record.data_quality_warnings)


def test_numeric_identifiers_render_without_fraction(builder, make_row):
    grouped = builder.build([make_row(external_id=1042.0, loan_number=7.0)])

    assert grouped.records[0].identity == ("1042", "7")


def test_defaults_for_absent_cells(builder, make_row):
    """Absent cells resolve to their documented defaults"""
    grouped = builder.build([make_row(external_id="EXT-1", loan_number="L-1", state="TX")])
    record = grouped.records[0]

    assert record.installment_amount == 1000.0
    assert record.payment_frequency == "Weekly"
    assert record.lead.fico == 650
    assert record.lead.fico_reported is False
    assert record.client.name == "Unknown"
    assert record.client.industry_sector == "Unknown"
    assert record.client.industry_subsector == "General"
    assert record.client.country == "United States"
    assert record.client.state == "TX"  # falls back to the loan state
    assert record.contract_date is None


def test_zero_installment_amount_uses_default(builder, make_row):
    grouped = builder.build(
        [make_row(external_id="EXT-1", loan_number="L-1", installment_amount=0)]
    )

    assert grouped.records[0].installment_amount == 1000.0


def test_blank_paydate_amount_uses_installment_amount(builder, make_row):
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1", installment_amount=750),
        make_row(paydate_date="2024-01-08"),
        make_row(paydate_date="2024-01-15", paydate_amount=0),
    ]

    record = builder.build(rows).records[0]

    assert [p.amount for p in record.paydates] == [750.0, 750.0]


def test_unparseable_cells_become_warnings(builder, make_row):
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1", loan_amount="lots", lead_fico="n/a"),
        make_row(paydate_date="someday", paydate_amount=500),
    ]

    record = builder.build(rows).records[0]

    assert record.loan_amount == 0.0
    assert record.lead.fico == 650
    assert record.paydates == ()
    warnings = " ".join(record.data_quality_warnings)
    assert "loan_amount" in warnings
    assert "lead_fico" in warnings
    assert "schedule entry dropped" in warnings


def test_entries_are_sorted_by_date(builder, make_row):
    rows = [
        make_row(external_id="EXT-1", loan_number="L-1", paydate_date="2024-01-22"),
        make_row(paydate_date="2024-01-08"),
        make_row(paydate_date="2024-01-15"),
    ]

    record = builder.build(rows).records[0]

    assert [p.date for p in record.paydates] == [
        date(2024, 1, 8),
        date(2024, 1, 15),
        date(2024, 1, 22),
    ]


def test_contract_date_prefers_payout_date(builder, make_row):
    rows = [
        make_row(
            external_id="EXT-1",
            loan_number="L-1",
            payout_date="2024-01-02",
            first_payment_date="2024-01-09",
        ),
        make_row(external_id="EXT-2", loan_number="L-2", first_payment_date="2024-01-09"),
    ]

    first, second = builder.build(rows).records

    assert first.contract_date == date(2024, 1, 2)
    assert second.contract_date == date(2024, 1, 9)


def test_loan_term_derived_from_dates(builder, make_row):
    """Span of 180 days between first payment and end date is 6 months"""
    rows = [
        make_row(
            external_id="EXT-1",
            loan_number="L-1",
            first_payment_date="2024-01-01",
            end_date="2024-06-29",
        )
    ]

    record = builder.build(rows).records[0]

    assert record.loan_term == 6


def test_restructure_flag_and_lead_profile(builder, make_row):
    rows = [
        make_row(
            external_id="EXT-1",
            loan_number="L-1",
            loan_restructured="TRUE",
            lead_fico=712,
            lead_avg_revenue=42000,
            lead_avg_mca_debits=4200,
        )
    ]

    record = builder.build(rows).records[0]

    assert record.is_restructured is True
    assert record.lead.fico == 712
    assert record.lead.fico_reported is True
    assert record.lead.revenue == 42000.0
