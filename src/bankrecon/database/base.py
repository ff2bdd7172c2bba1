"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date, datetime

# Import entities directly to avoid circular import through domain/__init__.py
from bankrecon.domain.entities import (
    BankTransaction,
    CategoryRule,
    Confidence,
    Direction,
    Expense,
    ExpenseCategory,
    ExpenseSource,
    ExpenseStatus,
    ImportStatus,
    Invoice,
    InvoiceStatus,
    MatchStatus,
    MatchTarget,
    NewBankTransaction,
    StatementImport,
)


class Database(ABC):
    """Abstract store interface for the reconciliation engine.

    Services receive an instance of this interface instead of reaching for a
    shared client, so tests can run them against a throwaway database.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Import operations
    @abstractmethod
    def create_import(
        self,
        file_name: str,
        file_type: str,
        content_hash: str,
        status: ImportStatus = ImportStatus.PROCESSING,
        bank_id: Optional[str] = None,
        account_id: Optional[str] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
        imported_by: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> int:
        """Create an import record. Returns import ID.

        Raises ConflictError when another processing or completed import
        already holds the same content hash.
        """
        pass

    @abstractmethod
    def get_import(self, import_id: int) -> Optional[StatementImport]:
        """Get import by ID."""
        pass

    @abstractmethod
    def find_import_by_hash(
        self, content_hash: str, status: Optional[ImportStatus] = None
    ) -> Optional[StatementImport]:
        """Get the most recent import with the given content hash (and status)."""
        pass

    @abstractmethod
    def list_imports(self) -> list[StatementImport]:
        """List imports, newest first."""
        pass

    @abstractmethod
    def complete_import(
        self,
        import_id: int,
        total_transactions: int,
        total_credits_cents: int,
        total_debits_cents: int,
        skipped_balance_entries: int,
    ) -> None:
        """Mark an import completed and store its totals."""
        pass

    @abstractmethod
    def fail_import(self, import_id: int, error_message: str) -> None:
        """Mark an import failed with the error message. Its stored lines are removed."""
        pass

    # Bank transaction operations
    @abstractmethod
    def create_bank_transactions(
        self, import_id: int, transactions: Sequence[NewBankTransaction]
    ) -> list[BankTransaction]:
        """Insert all transactions of an import in one unit of work.

        Either every row is stored or none is.
        """
        pass

    @abstractmethod
    def get_bank_transaction(self, transaction_id: int) -> Optional[BankTransaction]:
        """Get bank transaction by ID."""
        pass

    @abstractmethod
    def list_bank_transactions(
        self,
        import_id: Optional[int] = None,
        match_status: Optional[MatchStatus] = None,
        direction: Optional[Direction] = None,
        include_balance_entries: bool = True,
    ) -> list[BankTransaction]:
        """List bank transactions ordered by posted date, then ID."""
        pass

    @abstractmethod
    def apply_match(
        self,
        transaction_id: int,
        matched_type: MatchTarget,
        matched_id: int,
        match_status: MatchStatus,
        confidence: Optional[Confidence],
        matched_by: Optional[str],
        matched_at: datetime,
        processor_fee_cents: Optional[int] = None,
    ) -> bool:
        """Link a transaction to an invoice or expense and mark the target paid.

        The transaction is only updated while still unmatched and the target
        while still open; both changes are committed together. Returns False
        (and changes nothing) when either condition no longer holds.
        """
        pass

    @abstractmethod
    def ignore_bank_transaction(
        self, transaction_id: int, matched_by: Optional[str], matched_at: datetime
    ) -> bool:
        """Mark an unmatched transaction ignored. Returns False if it was not unmatched."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        amount_cents: int,
        due_date: date,
        student_name: Optional[str] = None,
        description: Optional[str] = None,
        status: InvoiceStatus = InvoiceStatus.PENDING,
    ) -> int:
        """Create an invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def list_invoices(self, statuses: Optional[Sequence[InvoiceStatus]] = None) -> list[Invoice]:
        """List invoices, optionally filtered by status, ordered by due date."""
        pass

    # Expense operations
    @abstractmethod
    def create_expense(
        self,
        amount_cents: int,
        due_date: date,
        description: str,
        category_id: Optional[int] = None,
        status: ExpenseStatus = ExpenseStatus.PENDING,
        payment_date: Optional[date] = None,
        notes: Optional[str] = None,
        source: ExpenseSource = ExpenseSource.MANUAL,
    ) -> int:
        """Create an expense. Returns expense ID."""
        pass

    @abstractmethod
    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        pass

    @abstractmethod
    def list_expenses(
        self,
        statuses: Optional[Sequence[ExpenseStatus]] = None,
        source: Optional[ExpenseSource] = None,
    ) -> list[Expense]:
        """List expenses, optionally filtered by status and source, ordered by due date."""
        pass

    # Expense category operations
    @abstractmethod
    def create_expense_category(self, name: str) -> int:
        """Create an expense category. Returns category ID."""
        pass

    @abstractmethod
    def get_expense_category(self, category_id: int) -> Optional[ExpenseCategory]:
        """Get expense category by ID."""
        pass

    @abstractmethod
    def get_expense_category_by_name(self, name: str) -> Optional[ExpenseCategory]:
        """Get expense category by name (case-insensitive)."""
        pass

    @abstractmethod
    def list_expense_categories(self) -> list[ExpenseCategory]:
        """List expense categories ordered by name."""
        pass

    # Category rule operations
    @abstractmethod
    def create_category_rule(self, keyword: str, category_id: int, priority: int = 5) -> int:
        """Create a category rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_category_rule(self, rule_id: int) -> Optional[CategoryRule]:
        """Get category rule by ID."""
        pass

    @abstractmethod
    def list_category_rules(self) -> list[CategoryRule]:
        """List category rules, highest priority first."""
        pass

    @abstractmethod
    def delete_category_rule(self, rule_id: int) -> None:
        """Delete a category rule."""
        pass
