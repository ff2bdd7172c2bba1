"""Bank statement import domain service."""

import hashlib
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional

from bankrecon.database.base import Database
from bankrecon.domain.category_rules import CategoryRuleService, resolve_category
from bankrecon.domain.classifier import classify
from bankrecon.domain.entities import (
    BankTransaction,
    Direction,
    ExpenseSource,
    ExpenseStatus,
    FileType,
    ImportStatus,
    MatchStatus,
    NewBankTransaction,
    StatementImport,
)
from bankrecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ProcessingError,
    StatementParseError,
    ValidationError,
    duplicate_file,
    import_not_found,
    unsupported_file_type,
)
from bankrecon.logging_config import get_logger, log_timing
from bankrecon.parsers import ParsedStatement, parse_statement

logger = get_logger(__name__)

DEFAULT_CATEGORY_NAME = "General"


def content_hash(content: str | bytes) -> str:
    """Return the sha256 hex digest of the raw file content."""
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(raw).hexdigest()


def file_type_from_name(file_name: str) -> Optional[str]:
    """Infer the statement type from a file extension."""
    suffix = Path(file_name).suffix.lower().lstrip(".")
    return suffix or None


@dataclass
class ImportResult:
    """Outcome of one successful ingestion."""

    import_id: int
    total_transactions: int
    skipped_balance_entries: int
    skipped_duplicates: int
    total_credits_cents: int
    total_debits_cents: int
    bank_id: Optional[str]
    account_id: Optional[str]
    period_start: Optional[date]
    period_end: Optional[date]
    expenses_created: int
    transactions: list[BankTransaction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the ingestion summary payload."""
        return {
            "import_id": self.import_id,
            "summary": {
                "total_transactions": self.total_transactions,
                "skipped_balance_entries": self.skipped_balance_entries,
                "skipped_duplicates": self.skipped_duplicates,
                "total_credits": self.total_credits_cents,
                "total_debits": self.total_debits_cents,
                "bank": self.bank_id,
                "account": self.account_id,
                "period": {
                    "start": self.period_start.isoformat() if self.period_start else None,
                    "end": self.period_end.isoformat() if self.period_end else None,
                },
                "expenses_created": self.expenses_created,
            },
        }


class StatementImportService:
    """Service for ingesting bank statements."""

    def __init__(self, db: Database, default_category_name: str = DEFAULT_CATEGORY_NAME):
        """Initialize statement import service.

        Args:
            db: Database instance
            default_category_name: Category for auto-created expenses no rule matches
        """
        self.db = db
        self.default_category_name = default_category_name
        self.category_service = CategoryRuleService(db)

    def ingest(
        self,
        file_content: str | bytes,
        file_name: str,
        file_type: str,
        imported_by: Optional[str] = None,
        reference_date: Optional[date] = None,
    ) -> ImportResult:
        """Import one statement file.

        Args:
            file_content: Raw content (text for OFX/CSV, bytes or base64 text
                for spreadsheets)
            file_name: Original file name, kept for operator reference
            file_type: One of ofx, csv, xlsx, xls
            imported_by: Acting user stamped on the import
            reference_date: Fallback due date for credit-card spreadsheets

        Returns:
            ImportResult with the persisted transactions and summary totals

        Raises:
            ValidationError: If content or file name is missing, or the type is unsupported
            ConflictError: If the same content was already imported
            ProcessingError: If the file cannot be parsed or its rows cannot be stored
        """
        if not file_content:
            raise ValidationError("File content is required")
        if not file_name or not file_name.strip():
            raise ValidationError("File name is required")
        try:
            kind = FileType(str(file_type or "").strip().lower())
        except ValueError:
            raise ValidationError(unsupported_file_type(file_type))

        digest = content_hash(file_content)
        previous = self.db.find_import_by_hash(digest, status=ImportStatus.COMPLETED)
        if previous is not None:
            raise ConflictError(
                duplicate_file(previous.id, previous.file_name),
                details={"import_id": previous.id, "file_name": previous.file_name},
            )

        log = logger.bind(file_name=file_name, file_type=str(kind))
        try:
            statement = parse_statement(file_content, kind, reference_date=reference_date)
        except StatementParseError as e:
            failed_id = self.db.create_import(
                file_name=file_name,
                file_type=kind,
                content_hash=digest,
                status=ImportStatus.FAILED,
                imported_by=imported_by,
                error_message=e.message,
            )
            log.warning("statement_parse_failed", import_id=failed_id, error=e.message)
            raise ProcessingError(
                f"Could not parse statement: {e.message}", details={"import_id": failed_id}
            ) from e

        import_id = self.db.create_import(
            file_name=file_name,
            file_type=kind,
            content_hash=digest,
            bank_id=statement.bank_id,
            account_id=statement.account_id,
            period_start=statement.period_start,
            period_end=statement.period_end,
            imported_by=imported_by,
        )
        log = log.bind(import_id=import_id)

        rows, skipped_balance, skipped_duplicates = self._classify(statement)

        # Anything that goes wrong past this point must release the content hash
        try:
            with log_timing("bulk_insert", logger=log, rows=len(rows)):
                inserted = self.db.create_bank_transactions(import_id, rows)

            expenses_created = self._create_expenses(import_id, file_name, inserted)

            credits = sum(t.amount_cents for t in inserted if t.direction == Direction.CREDIT)
            debits = sum(t.amount_cents for t in inserted if t.direction == Direction.DEBIT)
            self.db.complete_import(
                import_id,
                total_transactions=len(inserted),
                total_credits_cents=credits,
                total_debits_cents=debits,
                skipped_balance_entries=skipped_balance,
            )
        except Exception as e:
            self.db.fail_import(import_id, str(e))
            log.error("statement_store_failed", error=str(e))
            raise ProcessingError(
                f"Failed to store statement: {e}", details={"import_id": import_id}
            ) from e

        log.info(
            "statement_imported",
            transactions=len(inserted),
            skipped_balance_entries=skipped_balance,
            skipped_duplicates=skipped_duplicates,
            expenses_created=expenses_created,
        )

        return ImportResult(
            import_id=import_id,
            total_transactions=len(inserted),
            skipped_balance_entries=skipped_balance,
            skipped_duplicates=skipped_duplicates,
            total_credits_cents=credits,
            total_debits_cents=debits,
            bank_id=statement.bank_id,
            account_id=statement.account_id,
            period_start=statement.period_start,
            period_end=statement.period_end,
            expenses_created=expenses_created,
            transactions=inserted,
        )

    def ingest_file(
        self,
        path: str | Path,
        file_type: Optional[str] = None,
        imported_by: Optional[str] = None,
        reference_date: Optional[date] = None,
    ) -> ImportResult:
        """Import a statement file from disk.

        The type is inferred from the extension unless given.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Statement file not found: {path}")
        kind = file_type or file_type_from_name(file_path.name)
        # Parsers decode text themselves; the hash is taken over the raw bytes
        return self.ingest(
            file_path.read_bytes(),
            file_path.name,
            kind,
            imported_by=imported_by,
            reference_date=reference_date,
        )

    def _classify(
        self, statement: ParsedStatement
    ) -> tuple[list[NewBankTransaction], int, int]:
        rows: list[NewBankTransaction] = []
        seen_ids: set[str] = set()
        skipped_balance = 0
        skipped_duplicates = 0
        for raw in statement.transactions:
            result = classify(raw.memo, raw.direction)
            if result.is_balance_entry:
                skipped_balance += 1
                continue
            if raw.external_id in seen_ids:
                skipped_duplicates += 1
                continue
            seen_ids.add(raw.external_id)
            rows.append(
                NewBankTransaction(
                    fit_id=raw.external_id,
                    direction=raw.direction,
                    posted_date=raw.posted_date,
                    amount_cents=raw.amount_cents,
                    memo=raw.memo,
                    parsed_type=result.type,
                    counterparty_name=result.counterparty_name,
                    counterparty_document=result.counterparty_document,
                )
            )
        return rows, skipped_balance, skipped_duplicates

    def _create_expenses(
        self, import_id: int, file_name: str, transactions: list[BankTransaction]
    ) -> int:
        debits = [t for t in transactions if t.direction == Direction.DEBIT]
        if not debits:
            return 0

        created = 0
        try:
            rules = self.category_service.list_rules()
            default_category_id: Optional[int] = None
            for txn in debits:
                category_id = resolve_category(txn.memo, rules)
                if category_id is None:
                    if default_category_id is None:
                        default_category_id = self.category_service.get_or_create_category(
                            self.default_category_name
                        )
                    category_id = default_category_id
                self.db.create_expense(
                    amount_cents=txn.amount_cents,
                    due_date=txn.posted_date,
                    description=txn.counterparty_name or txn.memo or txn.parsed_type,
                    category_id=category_id,
                    status=ExpenseStatus.PAID,
                    payment_date=txn.posted_date,
                    notes=f"Created from bank import {import_id} ({file_name})",
                    source=ExpenseSource.BANK_IMPORT,
                )
                created += 1
        except Exception:
            logger.exception("auto_expense_creation_failed", import_id=import_id, created=created)
        return created

    def list_imports(self) -> list[StatementImport]:
        """List imports, newest first."""
        return self.db.list_imports()

    def get_import(self, import_id: int) -> StatementImport:
        """Get an import.

        Raises:
            NotFoundError: If the import doesn't exist
        """
        statement_import = self.db.get_import(import_id)
        if statement_import is None:
            raise NotFoundError(import_not_found(import_id))
        return statement_import

    def list_transactions(
        self,
        import_id: Optional[int] = None,
        match_status: Optional[MatchStatus] = None,
        direction: Optional[Direction] = None,
    ) -> list[BankTransaction]:
        """List stored transactions, optionally for one import.

        Raises:
            NotFoundError: If the import doesn't exist
        """
        if import_id is not None:
            self.get_import(import_id)
        return self.db.list_bank_transactions(
            import_id=import_id, match_status=match_status, direction=direction
        )

    def summarize(self, import_id: int) -> dict[str, int]:
        """Return reconciliation KPIs for an import.

        Returns:
            Dict with total, credits and debits (cents), and matched,
            unmatched and ignored transaction counts
        """
        transactions = self.list_transactions(import_id)
        matched_statuses = {MatchStatus.AUTO_MATCHED, MatchStatus.MANUAL_MATCHED}
        return {
            "total": len(transactions),
            "credits": sum(
                t.amount_cents for t in transactions if t.direction == Direction.CREDIT
            ),
            "debits": sum(t.amount_cents for t in transactions if t.direction == Direction.DEBIT),
            "matched": sum(1 for t in transactions if t.match_status in matched_statuses),
            "unmatched": sum(1 for t in transactions if t.match_status == MatchStatus.UNMATCHED),
            "ignored": sum(1 for t in transactions if t.match_status == MatchStatus.IGNORED),
        }
