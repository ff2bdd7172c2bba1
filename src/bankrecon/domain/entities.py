"""Domain model entities for bankrecon.

These are pure data classes representing reconciliation concepts, independent
of the database schema. Services and the matching engine only ever see these,
so the storage layer can change without touching the business rules.
"""

from dataclasses import dataclass
from datetime import datetime, date
from enum import StrEnum
from typing import Any, Optional


class FileType(StrEnum):
    OFX = "ofx"
    CSV = "csv"
    XLSX = "xlsx"
    XLS = "xls"


class ImportStatus(StrEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Direction(StrEnum):
    CREDIT = "credit"
    DEBIT = "debit"


class MatchStatus(StrEnum):
    UNMATCHED = "unmatched"
    AUTO_MATCHED = "auto_matched"
    MANUAL_MATCHED = "manual_matched"
    IGNORED = "ignored"


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric strength of the tier, higher is stronger."""
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class MatchTarget(StrEnum):
    INVOICE = "invoice"
    EXPENSE = "expense"


class InvoiceStatus(StrEnum):
    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
    CANCELLED = "cancelled"


class ExpenseStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class ExpenseSource(StrEnum):
    MANUAL = "manual"
    BANK_IMPORT = "bank_import"
    AUTO_FEE = "auto_fee"


OPEN_INVOICE_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)
OPEN_EXPENSE_STATUSES = (ExpenseStatus.PENDING,)


@dataclass(frozen=True)
class StatementImport:
    """One statement file ingestion."""

    id: int
    file_name: str
    file_type: FileType
    bank_id: Optional[str]
    account_id: Optional[str]
    period_start: Optional[date]
    period_end: Optional[date]
    status: ImportStatus
    content_hash: str
    total_transactions: int
    total_credits_cents: int
    total_debits_cents: int
    skipped_balance_entries: int
    error_message: Optional[str]
    imported_by: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class BankTransaction:
    """A single line of an imported bank statement."""

    id: int
    import_id: int
    fit_id: str
    direction: Direction
    posted_date: date
    amount_cents: int
    memo: str
    parsed_type: str
    counterparty_name: Optional[str]
    counterparty_document: Optional[str]
    is_balance_entry: bool
    match_status: MatchStatus
    match_confidence: Optional[Confidence]
    matched_type: Optional[MatchTarget]
    matched_id: Optional[int]
    matched_at: Optional[datetime]
    matched_by: Optional[str]
    processor_fee_cents: Optional[int]
    created_at: datetime

    def match_fields(self) -> dict[str, Any]:
        """Return the match-related fields reported after a review action."""
        return {
            "transaction_id": self.id,
            "match_status": self.match_status.value,
            "match_confidence": self.match_confidence.value if self.match_confidence else None,
            "matched_type": self.matched_type.value if self.matched_type else None,
            "matched_id": self.matched_id,
            "matched_at": self.matched_at.isoformat() if self.matched_at else None,
            "matched_by": self.matched_by,
            "processor_fee_cents": self.processor_fee_cents,
        }


@dataclass(frozen=True)
class NewBankTransaction:
    """A classified statement line ready for bulk insertion."""

    fit_id: str
    direction: Direction
    posted_date: date
    amount_cents: int
    memo: str
    parsed_type: str
    counterparty_name: Optional[str]
    counterparty_document: Optional[str]
    is_balance_entry: bool = False


@dataclass(frozen=True)
class Invoice:
    """Receivable owned by the billing side of the platform."""

    id: int
    amount_cents: int
    due_date: date
    status: InvoiceStatus
    student_name: Optional[str]
    description: Optional[str]
    payment_date: Optional[date]


@dataclass(frozen=True)
class Expense:
    """Payable owned by the finance side of the platform."""

    id: int
    amount_cents: int
    due_date: date
    status: ExpenseStatus
    description: str
    category_id: Optional[int]
    payment_date: Optional[date]
    notes: Optional[str]
    source: ExpenseSource


@dataclass(frozen=True)
class ExpenseCategory:
    """Expense category entity."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class CategoryRule:
    """Keyword rule assigning an expense category to imported debits."""

    id: int
    keyword: str
    category_id: int
    priority: int
    created_at: datetime
