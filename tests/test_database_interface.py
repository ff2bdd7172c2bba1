"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime, UTC

from bankrecon.database import create_database, create_sqlite_database
from bankrecon.database.factories import default_database_path
from bankrecon.domain import entities
from bankrecon.domain.entities import (
    Confidence,
    Direction,
    ExpenseStatus,
    ImportStatus,
    InvoiceStatus,
    MatchStatus,
    MatchTarget,
    NewBankTransaction,
)
from bankrecon.domain.errors import ConflictError


def new_txn(fit_id, direction=Direction.CREDIT, amount_cents=1000, posted=date(2024, 3, 10)):
    return NewBankTransaction(
        fit_id=fit_id,
        direction=direction,
        posted_date=posted,
        amount_cents=amount_cents,
        memo=f"MEMO {fit_id}",
        parsed_type="other_credit" if direction == Direction.CREDIT else "other_debit",
        counterparty_name=None,
        counterparty_document=None,
    )


class TestImports:
    """Import records and the content-hash guard."""

    def test_create_and_get_import(self, temp_db):
        """create_import returns an ID and get_import a domain entity."""
        import_id = temp_db.create_import(
            file_name="march.ofx",
            file_type="ofx",
            content_hash="abc",
            bank_id="0341",
            imported_by="ana",
        )

        imp = temp_db.get_import(import_id)

        assert isinstance(imp, entities.StatementImport)
        assert imp.status == ImportStatus.PROCESSING
        assert imp.file_type == entities.FileType.OFX
        assert imp.bank_id == "0341"
        assert imp.imported_by == "ana"
        assert imp.total_transactions == 0
        assert isinstance(imp.created_at, datetime)

    def test_active_hash_is_unique(self, temp_db):
        """Only one processing or completed import may hold a content hash."""
        temp_db.create_import(file_name="a.ofx", file_type="ofx", content_hash="same")

        with pytest.raises(ConflictError):
            temp_db.create_import(file_name="b.ofx", file_type="ofx", content_hash="same")

    def test_failed_import_releases_hash(self, temp_db):
        """A failed import doesn't block a retry of the same content."""
        first = temp_db.create_import(file_name="a.ofx", file_type="ofx", content_hash="same")
        temp_db.fail_import(first, "boom")

        second = temp_db.create_import(file_name="a.ofx", file_type="ofx", content_hash="same")

        assert second != first
        assert temp_db.get_import(first).status == ImportStatus.FAILED
        assert temp_db.get_import(first).error_message == "boom"

    def test_complete_import_and_find_by_hash(self, temp_db):
        """Completed imports are found by hash and status."""
        import_id = temp_db.create_import(file_name="a.csv", file_type="csv", content_hash="h1")
        temp_db.complete_import(
            import_id,
            total_transactions=3,
            total_credits_cents=500,
            total_debits_cents=200,
            skipped_balance_entries=1,
        )

        found = temp_db.find_import_by_hash("h1", status=ImportStatus.COMPLETED)

        assert found.id == import_id
        assert found.total_transactions == 3
        assert found.total_credits_cents == 500
        assert found.total_debits_cents == 200
        assert found.skipped_balance_entries == 1
        assert temp_db.find_import_by_hash("h1", status=ImportStatus.PROCESSING) is None
        assert temp_db.find_import_by_hash("other") is None

    def test_list_imports_newest_first(self, temp_db):
        """list_imports returns the newest import first."""
        first = temp_db.create_import(file_name="1.ofx", file_type="ofx", content_hash="1")
        second = temp_db.create_import(file_name="2.ofx", file_type="ofx", content_hash="2")

        assert [imp.id for imp in temp_db.list_imports()] == [second, first]


class TestBankTransactions:
    """Bulk insert, listing and match updates."""

    @pytest.fixture
    def import_id(self, temp_db):
        return temp_db.create_import(file_name="s.ofx", file_type="ofx", content_hash="s")

    def test_bulk_insert_returns_domain_models(self, temp_db, import_id):
        """Inserted rows come back unmatched with IDs."""
        rows = temp_db.create_bank_transactions(import_id, [new_txn("A"), new_txn("B")])

        assert len(rows) == 2
        for row in rows:
            assert isinstance(row, entities.BankTransaction)
            assert row.id is not None
            assert row.match_status == MatchStatus.UNMATCHED
            assert row.match_confidence is None

    def test_bulk_insert_is_all_or_nothing(self, temp_db, import_id):
        """A duplicate FITID in the batch stores nothing."""
        with pytest.raises(Exception):
            temp_db.create_bank_transactions(import_id, [new_txn("A"), new_txn("A")])

        assert temp_db.list_bank_transactions(import_id=import_id) == []

    def test_list_filters_and_order(self, temp_db, import_id):
        """Transactions are ordered by posted date, then ID, and filterable."""
        temp_db.create_bank_transactions(
            import_id,
            [
                new_txn("late", posted=date(2024, 3, 20)),
                new_txn("debit", direction=Direction.DEBIT, posted=date(2024, 3, 1)),
                new_txn("early", posted=date(2024, 3, 5)),
            ],
        )

        all_rows = temp_db.list_bank_transactions(import_id=import_id)
        credits = temp_db.list_bank_transactions(direction=Direction.CREDIT)

        assert [t.fit_id for t in all_rows] == ["debit", "early", "late"]
        assert [t.fit_id for t in credits] == ["early", "late"]

    def test_apply_match_pays_invoice(self, temp_db, import_id):
        """apply_match links the transaction and marks the invoice paid."""
        (txn,) = temp_db.create_bank_transactions(import_id, [new_txn("A", amount_cents=15000)])
        invoice_id = temp_db.create_invoice(amount_cents=15000, due_date=date(2024, 3, 10))
        when = datetime(2024, 3, 11, 9, 0, tzinfo=UTC)

        applied = temp_db.apply_match(
            transaction_id=txn.id,
            matched_type=MatchTarget.INVOICE,
            matched_id=invoice_id,
            match_status=MatchStatus.AUTO_MATCHED,
            confidence=Confidence.HIGH,
            matched_by="ana",
            matched_at=when,
        )

        assert applied
        updated = temp_db.get_bank_transaction(txn.id)
        assert updated.match_status == MatchStatus.AUTO_MATCHED
        assert updated.match_confidence == Confidence.HIGH
        assert updated.matched_type == MatchTarget.INVOICE
        assert updated.matched_id == invoice_id
        assert updated.matched_by == "ana"
        invoice = temp_db.get_invoice(invoice_id)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.payment_date == date(2024, 3, 10)

    def test_apply_match_only_once(self, temp_db, import_id):
        """A second apply on the same transaction is refused."""
        (txn,) = temp_db.create_bank_transactions(import_id, [new_txn("A")])
        first = temp_db.create_invoice(amount_cents=1000, due_date=date(2024, 3, 10))
        second = temp_db.create_invoice(amount_cents=1000, due_date=date(2024, 3, 10))
        kwargs = dict(
            matched_type=MatchTarget.INVOICE,
            match_status=MatchStatus.AUTO_MATCHED,
            confidence=Confidence.HIGH,
            matched_by=None,
            matched_at=datetime.now(UTC),
        )

        assert temp_db.apply_match(transaction_id=txn.id, matched_id=first, **kwargs)
        assert not temp_db.apply_match(transaction_id=txn.id, matched_id=second, **kwargs)
        assert temp_db.get_invoice(second).status == InvoiceStatus.PENDING

    def test_apply_match_refuses_closed_target(self, temp_db, import_id):
        """A target that is no longer open leaves the transaction unmatched."""
        (txn,) = temp_db.create_bank_transactions(
            import_id, [new_txn("A", direction=Direction.DEBIT)]
        )
        expense_id = temp_db.create_expense(
            amount_cents=1000,
            due_date=date(2024, 3, 10),
            description="Aluguel",
            status=ExpenseStatus.CANCELLED,
        )

        applied = temp_db.apply_match(
            transaction_id=txn.id,
            matched_type=MatchTarget.EXPENSE,
            matched_id=expense_id,
            match_status=MatchStatus.MANUAL_MATCHED,
            confidence=None,
            matched_by=None,
            matched_at=datetime.now(UTC),
        )

        assert not applied
        assert temp_db.get_bank_transaction(txn.id).match_status == MatchStatus.UNMATCHED

    def test_ignore_bank_transaction(self, temp_db, import_id):
        """Ignoring works once, from the unmatched state."""
        (txn,) = temp_db.create_bank_transactions(import_id, [new_txn("A")])

        assert temp_db.ignore_bank_transaction(txn.id, "ana", datetime.now(UTC))
        assert not temp_db.ignore_bank_transaction(txn.id, "ana", datetime.now(UTC))
        assert temp_db.get_bank_transaction(txn.id).match_status == MatchStatus.IGNORED


class TestCategoriesAndRules:
    """Expense categories and keyword rules."""

    def test_category_lookup_is_case_insensitive(self, temp_db):
        """Categories are found by name regardless of case."""
        category_id = temp_db.create_expense_category("Utilities")

        found = temp_db.get_expense_category_by_name("utilities")

        assert isinstance(found, entities.ExpenseCategory)
        assert found.id == category_id

    def test_duplicate_category_conflicts(self, temp_db):
        """Category names are unique."""
        temp_db.create_expense_category("Rent")

        with pytest.raises(ConflictError):
            temp_db.create_expense_category("Rent")

    def test_rules_ordered_by_priority(self, temp_db):
        """Rules are listed highest priority first."""
        category_id = temp_db.create_expense_category("Food")
        low = temp_db.create_category_rule("PADARIA", category_id, priority=1)
        high = temp_db.create_category_rule("MERCADO", category_id, priority=9)
        default = temp_db.create_category_rule("IFOOD", category_id)

        rules = temp_db.list_category_rules()

        assert [r.id for r in rules] == [high, default, low]
        assert rules[1].priority == 5

    def test_list_expenses_by_source(self, temp_db):
        """Expenses can be filtered by status and source."""
        temp_db.create_expense(amount_cents=100, due_date=date(2024, 3, 1), description="A")
        temp_db.create_expense(
            amount_cents=200,
            due_date=date(2024, 3, 2),
            description="B",
            status=ExpenseStatus.PAID,
            source=entities.ExpenseSource.AUTO_FEE,
        )

        fees = temp_db.list_expenses(source=entities.ExpenseSource.AUTO_FEE)
        pending = temp_db.list_expenses(statuses=[ExpenseStatus.PENDING])

        assert [e.description for e in fees] == ["B"]
        assert [e.description for e in pending] == ["A"]


def test_create_database_from_url():
    """Any SQLAlchemy URL gives a working store."""
    db = create_database("sqlite://")
    db.connect()
    db.initialize_schema()

    category_id = db.create_expense_category("Rent")

    assert db.get_expense_category(category_id).name == "Rent"
    db.disconnect()


def test_sqlite_database_path_from_environment(tmp_path, monkeypatch):
    """BANKRECON_DB_PATH picks the file and missing directories are created."""
    target = tmp_path / "books" / "recon.db"
    monkeypatch.setenv("BANKRECON_DB_PATH", str(target))

    db = create_sqlite_database()
    db.connect()
    db.initialize_schema()
    db.create_expense_category("Rent")
    db.disconnect()

    assert db.database_url == f"sqlite:///{target}"
    assert target.exists()


def test_default_database_path(tmp_path, monkeypatch):
    monkeypatch.delenv("BANKRECON_DB_PATH", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert default_database_path() == tmp_path / ".bankrecon" / "bankrecon.db"
