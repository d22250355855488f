"""Domain-specific exceptions"""

from typing import Sequence


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class BatchStructureError(DomainException):
    """Input rows are structurally unusable (no header, no data rows, not a table)"""

    pass


class MissingColumnsError(BatchStructureError):
    """Header row is missing one or more required columns"""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class RecordProcessingError(DomainException):
    """A single loan record could not be reconciled"""

    def __init__(self, external_id: str, loan_number: str, reason: str):
        self.external_id = external_id
        self.loan_number = loan_number
        self.reason = reason
        super().__init__(f"Loan {external_id}/{loan_number}: {reason}")
