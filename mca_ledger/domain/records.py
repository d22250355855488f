"""Row grouping - turns flat ledger export rows into one LoanRecord per loan.

A loan spans a header row (external id and loan number both present) followed by any
number of continuation rows. Each row, header included, may carry one schedule entry
and one ledger entry. Every cell is resolved to a typed value here so later stages
never see raw spreadsheet values.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from mca_ledger.domain.constants import DEFAULTS, Column
from mca_ledger.domain.models import (
    ClientProfile,
    LeadProfile,
    LedgerTransaction,
    LoanRecord,
    ScheduledInstallment,
)
from mca_ledger.utils.date_utils import day_diff, parse_date
from mca_ledger.utils.parsing import (
    is_blank,
    is_empty_row,
    parse_flag,
    parse_identifier,
    parse_number,
    parse_text,
)

# Row 1 of the export is the header
FIRST_DATA_ROW_NUMBER = 2


class _RowReader:
    """Typed access to the cells of one raw row; unparseable cells become warnings"""

    def __init__(self, row: Sequence[Any], row_number: int, warnings: List[str]):
        self.row = row
        self.row_number = row_number
        self.warnings = warnings

    def cell(self, column: Column) -> Any:
        return self.row[column] if column < len(self.row) else None

    def has(self, column: Column) -> bool:
        return not is_blank(self.cell(column))

    def _warn(self, column: Column, raw: Any, fallback: Any) -> None:
        self.warnings.append(
            f"Row {self.row_number}: could not parse {column.name.lower()} "
            f"value {raw!r}, using {fallback!r}"
        )

    def number(self, column: Column, default: Optional[float] = 0.0) -> Optional[float]:
        raw = self.cell(column)
        if is_blank(raw):
            return default
        value = parse_number(raw)
        if value is None:
            self._warn(column, raw, default)
            return default
        return value

    def integer(self, column: Column, default: Optional[int] = 0) -> Optional[int]:
        value = self.number(column, None)
        return int(value) if value is not None else default

    def text(self, column: Column, default: Optional[str] = "") -> Optional[str]:
        return parse_text(self.cell(column), default)

    def flag(self, column: Column) -> bool:
        return parse_flag(self.cell(column))

    def date(self, column: Column) -> Optional[date]:
        raw = self.cell(column)
        if is_blank(raw):
            return None
        parsed = parse_date(raw)
        if isinstance(parsed, date):
            return parsed
        if parsed is not None:
            self._warn(column, raw, None)
        return None


@dataclass
class _RecordDraft:
    """Mutable accumulator for one loan while its rows are being read"""

    fields: Dict[str, Any]
    paydates: List[ScheduledInstallment] = field(default_factory=list)
    transactions: List[LedgerTransaction] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class GroupedRows:
    records: Tuple[LoanRecord, ...]
    skipped_rows: int = 0
    batch_warnings: Tuple[str, ...] = ()


class RecordBuilder:
    """Groups header and continuation rows into immutable loan records"""

    def build(self, data_rows: Sequence[Sequence[Any]]) -> GroupedRows:
        """
        Group data rows (header row already removed) into loan records.

        Requirements:
        - A row with both identity cells starts a record; a row with neither continues it
        - Rows with only one identity cell are skipped with a warning
        - Continuation rows seen before any header row are skipped with a warning
        - A repeated identity is folded into the first record carrying it

        Returns:
            GroupedRows with records in first-seen order
        """
        drafts: Dict[Tuple[str, str], _RecordDraft] = {}
        order: List[Tuple[str, str]] = []
        batch_warnings: List[str] = []
        skipped = 0
        current: Optional[_RecordDraft] = None

        for offset, row in enumerate(data_rows):
            row_number = FIRST_DATA_ROW_NUMBER + offset
            if is_empty_row(row):
                continue

            external_id = parse_identifier(_cell(row, Column.EXTERNAL_ID))
            loan_number = parse_identifier(_cell(row, Column.LOAN_NUMBER))

            if external_id and loan_number:
                identity = (external_id, loan_number)
                if identity in drafts:
                    current = drafts[identity]
                    current.warnings.append(
                        f"Row {row_number}: duplicate header for loan {loan_number}, "
                        f"merged into row {current.fields['row_number']}"
                    )
                else:
                    current = self._start_record(row, row_number, external_id, loan_number)
                    drafts[identity] = current
                    order.append(identity)
                self._append_entries(current, row, row_number)
            elif external_id or loan_number:
                skipped += 1
                batch_warnings.append(
                    f"Row {row_number}: skipped, only one of external id / loan number is set"
                )
            elif current is None:
                skipped += 1
                batch_warnings.append(
                    f"Row {row_number}: skipped, continuation row before any loan header"
                )
            else:
                self._append_entries(current, row, row_number)

        records = tuple(self._finalize(drafts[identity]) for identity in order)
        return GroupedRows(
            records=records,
            skipped_rows=skipped,
            batch_warnings=tuple(batch_warnings),
        )

    def _start_record(
        self, row: Sequence[Any], row_number: int, external_id: str, loan_number: str
    ) -> _RecordDraft:
        warnings: List[str] = []
        reader = _RowReader(row, row_number, warnings)

        loan_state = reader.text(Column.STATE, DEFAULTS["state"])
        fields = {
            "external_id": external_id,
            "loan_number": loan_number,
            "row_number": row_number,
            "active": reader.flag(Column.ACTIVE_DEBIT_ORDER),
            "loan_amount": reader.number(Column.LOAN_AMOUNT),
            "amount_sold": reader.number(Column.AMOUNT_SOLD),
            "contract_balance": reader.number(Column.CONTRACT_BALANCE),
            "remaining_amount": reader.number(Column.REMAINING_AMOUNT),
            # Zero is as useless as absent for an installment amount
            "installment_amount": (
                reader.number(Column.INSTALLMENT_AMOUNT, None)
                or DEFAULTS["installment_amount"]
            ),
            "last_installment_amount": reader.number(Column.LAST_INSTALLMENT_AMOUNT),
            "payment_frequency": reader.text(
                Column.PAYMENT_FREQUENCY, DEFAULTS["payment_frequency"]
            ),
            "loan_term": reader.integer(Column.LOAN_TERM, None) or None,
            "contract_interest": reader.number(Column.CONTRACT_INTEREST),
            "origination_fee": reader.number(Column.ORIGINATION_FEE),
            "state": loan_state,
            "progress": reader.number(Column.PROGRESS),
            "payout_date": reader.date(Column.PAYOUT_DATE),
            "first_payment_date": reader.date(Column.FIRST_PAYMENT_DATE),
            "end_date": reader.date(Column.END_DATE),
            "compound_date": reader.date(Column.COMPOUND_DATE),
            "days_overdue": reader.integer(Column.DAYS_OVERDUE),
            "days_overdue_mpf": reader.integer(Column.DAYS_OVERDUE_MPF),
            "days_overdue_on_write_off": reader.integer(Column.DAYS_OVERDUE_ON_WRITEOFF),
            "amount_overdue_on_write_off": reader.number(Column.AMOUNT_OVERDUE_ON_WRITEOFF),
            "amount_overdue": reader.number(Column.AMOUNT_OVERDUE),
            "is_restructured": reader.flag(Column.LOAN_RESTRUCTURED),
            "client": self._client(reader, loan_state),
            "lead": self._lead(reader),
        }
        return _RecordDraft(fields=fields, warnings=warnings)

    @staticmethod
    def _client(reader: _RowReader, loan_state: str) -> ClientProfile:
        return ClientProfile(
            client_id=parse_identifier(reader.cell(Column.CLIENT_ID)),
            name=reader.text(Column.CLIENT_DISPLAY_NAME, DEFAULTS["client_name"]),
            industry_sector=reader.text(
                Column.CLIENT_INDUSTRY_SECTOR, DEFAULTS["industry_sector"]
            ),
            industry_subsector=reader.text(
                Column.CLIENT_INDUSTRY_SUBSECTOR, DEFAULTS["industry_subsector"]
            ),
            date_founded=reader.date(Column.CLIENT_DATE_FOUNDED),
            address_line_1=reader.text(Column.CLIENT_ADDRESS_LINE_1),
            address_line_2=reader.text(Column.CLIENT_ADDRESS_LINE_2),
            address_line_3=reader.text(Column.CLIENT_ADDRESS_LINE_3),
            city=reader.text(Column.CLIENT_CITY, DEFAULTS["city"]),
            state=reader.text(Column.CLIENT_STATE, loan_state),
            country=reader.text(Column.CLIENT_COUNTRY, DEFAULTS["country"]),
            zip_code=reader.text(Column.CLIENT_ZIP_CODE),
            email=reader.text(Column.CLIENT_EMAIL),
            primary_no=reader.text(Column.CLIENT_PRIMARY_NO),
        )

    @staticmethod
    def _lead(reader: _RowReader) -> LeadProfile:
        fico = reader.integer(Column.LEAD_FICO, None)
        return LeadProfile(
            lead_id=parse_identifier(reader.cell(Column.LEAD_ID)),
            fico=fico or DEFAULTS["fico_score"],
            fico_reported=bool(fico),
            avg_monthly_revenue=reader.number(Column.LEAD_AVG_MONTHLY_REVENUE),
            avg_revenue=reader.number(Column.LEAD_AVG_REVENUE),
            avg_mca_debits=reader.number(Column.LEAD_AVG_MCA_DEBITS),
            avg_daily_balance=reader.number(Column.LEAD_AVG_DAILY_BALANCE),
            avg_nsfs=reader.number(Column.LEAD_AVG_NSFS),
            avg_negative_days=reader.number(Column.LEAD_AVG_NEGATIVE_DAYS),
            avg_num_deposits=reader.number(Column.LEAD_AVG_NUM_DEPOSITS),
            avg_num_credits=reader.number(Column.LEAD_AVG_NUM_CREDITS),
            avg_deposits=reader.number(Column.LEAD_AVG_DEPOSITS),
            avg_credits=reader.number(Column.LEAD_AVG_CREDITS),
            created_on=reader.date(Column.LEAD_CREATED_ON),
            closed_date=reader.date(Column.LEAD_CLOSED_DATE),
            sell_rate=reader.number(Column.LEAD_SELL_RATE),
            underwriter=reader.text(Column.LEAD_UNDERWRITER, None),
            salesperson=reader.text(Column.LEAD_SALESPERSON, None),
            pod_leader=reader.text(Column.LEAD_POD_LEADER, None),
        )

    @staticmethod
    def _append_entries(draft: _RecordDraft, row: Sequence[Any], row_number: int) -> None:
        reader = _RowReader(row, row_number, draft.warnings)

        if reader.has(Column.PAYDATE_DATE):
            paydate = reader.date(Column.PAYDATE_DATE)
            if paydate is None:
                draft.warnings.append(f"Row {row_number}: schedule entry dropped, no usable date")
            else:
                amount = reader.number(Column.PAYDATE_AMOUNT, None)
                draft.paydates.append(
                    ScheduledInstallment(
                        date=paydate,
                        amount=amount or draft.fields["installment_amount"],
                        row_number=row_number,
                    )
                )

        if reader.has(Column.TRANS_DATE):
            trans_date = reader.date(Column.TRANS_DATE)
            if trans_date is None:
                draft.warnings.append(f"Row {row_number}: ledger entry dropped, no usable date")
            else:
                draft.transactions.append(
                    LedgerTransaction(
                        date=trans_date,
                        reference=reader.text(Column.TRANS_REFERENCE),
                        type_name=reader.text(Column.TRANS_TYPE_NAME),
                        type_id=parse_identifier(reader.cell(Column.TRANS_TYPE_ID)),
                        debit=reader.number(Column.TRANS_DEBIT),
                        credit=reader.number(Column.TRANS_CREDIT),
                        balance=reader.number(Column.TRANS_BALANCE),
                        row_number=row_number,
                    )
                )

    @staticmethod
    def _finalize(draft: _RecordDraft) -> LoanRecord:
        fields = dict(draft.fields)

        # sorted() is stable, so same-day entries keep their row order
        fields["paydates"] = tuple(sorted(draft.paydates, key=lambda p: p.date))
        fields["transactions"] = tuple(sorted(draft.transactions, key=lambda t: t.date))
        fields["data_quality_warnings"] = tuple(draft.warnings)
        fields["contract_date"] = fields["payout_date"] or fields["first_payment_date"]

        if not fields["loan_term"] and fields["first_payment_date"] and fields["end_date"]:
            span = day_diff(fields["first_payment_date"], fields["end_date"])
            fields["loan_term"] = round(span / 30)

        return LoanRecord(**fields)


def _cell(row: Sequence[Any], column: Column) -> Any:
    return row[column] if column < len(row) else None
