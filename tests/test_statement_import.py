"""Tests for StatementImportService."""

import pytest

from bankrecon.domain.entities import (
    Direction,
    ExpenseSource,
    ExpenseStatus,
    ImportStatus,
    MatchStatus,
)
from bankrecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ProcessingError,
    ValidationError,
)
from bankrecon.domain.statement_import import (
    DEFAULT_CATEGORY_NAME,
    StatementImportService,
    content_hash,
    file_type_from_name,
)


class TestIngestOFX:
    """Ingesting the sample OFX statement."""

    def test_totals_exclude_balance_lines(self, import_service, sample_ofx):
        """The balance line is skipped and not counted in the totals."""
        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        assert result.total_transactions == 5
        assert result.skipped_balance_entries == 1
        assert result.skipped_duplicates == 0
        assert result.total_credits_cents == 25021
        assert result.total_debits_cents == 13490
        assert result.bank_id == "0341"
        assert result.account_id == "12345-6"

        payload = result.to_dict()
        assert payload["import_id"] == result.import_id
        assert payload["summary"]["total_credits"] == 25021
        assert payload["summary"]["period"] == {"start": "2024-03-01", "end": "2024-03-31"}

    def test_import_is_completed(self, import_service, temp_db, sample_ofx):
        result = import_service.ingest(sample_ofx, "march.ofx", "ofx", imported_by="ana")

        imp = temp_db.get_import(result.import_id)

        assert imp.status == ImportStatus.COMPLETED
        assert imp.total_transactions == 5
        assert imp.skipped_balance_entries == 1
        assert imp.imported_by == "ana"
        assert imp.content_hash == content_hash(sample_ofx)

    def test_transactions_are_classified(self, import_service, sample_ofx):
        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        by_fit = {t.fit_id: t for t in result.transactions}

        assert by_fit["20240310001"].parsed_type == "pix_received"
        assert by_fit["20240310001"].counterparty_name == "MARIA SILVA"
        assert by_fit["20240310001"].counterparty_document == "123.456.789-00"
        assert by_fit["20240312001"].parsed_type == "card_visa_credit"
        assert by_fit["20240320001"].direction == Direction.DEBIT
        assert "20240331001" not in by_fit
        assert all(t.match_status == MatchStatus.UNMATCHED for t in result.transactions)

    def test_reimport_conflicts(self, import_service, temp_db, sample_ofx):
        """The same content is rejected and nothing new is stored."""
        first = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        with pytest.raises(ConflictError) as exc_info:
            import_service.ingest(sample_ofx, "copy.ofx", "ofx")

        assert exc_info.value.details == {"import_id": first.import_id, "file_name": "march.ofx"}
        assert len(temp_db.list_bank_transactions()) == 5
        assert len(temp_db.list_imports()) == 1

    def test_duplicate_fit_ids_are_skipped(self, import_service, ofx_builder):
        content = ofx_builder(
            [
                ("CREDIT", "20240305", "10.00", "A1", "PIX RECEBIDO FULANO"),
                ("CREDIT", "20240305", "10.00", "A1", "PIX RECEBIDO FULANO"),
                ("CREDIT", "20240306", "20.00", "A2", "PIX RECEBIDO BELTRANO"),
            ]
        )

        result = import_service.ingest(content, "dup.ofx", "ofx")

        assert result.total_transactions == 2
        assert result.skipped_duplicates == 1
        assert result.total_credits_cents == 3000


class TestAutoExpenses:
    """Debits become paid expenses after import."""

    def test_debits_create_paid_expenses(self, import_service, temp_db, sample_ofx):
        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        expenses = temp_db.list_expenses(source=ExpenseSource.BANK_IMPORT)

        assert result.expenses_created == 2
        assert sorted(e.amount_cents for e in expenses) == [4500, 8990]
        for expense in expenses:
            assert expense.status == ExpenseStatus.PAID
            assert expense.payment_date == expense.due_date
            assert expense.notes == f"Created from bank import {result.import_id} (march.ofx)"
        assert {e.description for e in expenses} == {"ENERGISA SA", "JOAO COSTA"}

    def test_rules_pick_category(self, import_service, rule_service, temp_db, sample_ofx):
        """A matching keyword rule wins over the default category."""
        rule_service.add_rule("energisa", "Utilities")

        import_service.ingest(sample_ofx, "march.ofx", "ofx")

        utilities = temp_db.get_expense_category_by_name("Utilities")
        general = temp_db.get_expense_category_by_name(DEFAULT_CATEGORY_NAME)
        by_description = {e.description: e for e in temp_db.list_expenses()}
        assert by_description["ENERGISA SA"].category_id == utilities.id
        assert by_description["JOAO COSTA"].category_id == general.id

    def test_custom_default_category(self, temp_db, sample_ofx):
        service = StatementImportService(temp_db, default_category_name="Uncategorized")

        service.ingest(sample_ofx, "march.ofx", "ofx")

        category = temp_db.get_expense_category_by_name("Uncategorized")
        assert category is not None
        assert all(e.category_id == category.id for e in temp_db.list_expenses())

    def test_expense_failure_does_not_fail_import(
        self, import_service, temp_db, sample_ofx, monkeypatch
    ):
        """Expense creation is best effort."""

        def boom(**kwargs):
            raise RuntimeError("expenses table locked")

        monkeypatch.setattr(temp_db, "create_expense", boom)

        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        assert result.expenses_created == 0
        assert temp_db.get_import(result.import_id).status == ImportStatus.COMPLETED
        assert len(temp_db.list_bank_transactions(import_id=result.import_id)) == 5


class TestIngestCSV:
    """Ingesting the sample CSV statement."""

    def test_csv_file(self, import_service, fixtures_dir):
        result = import_service.ingest_file(fixtures_dir / "sample.csv")

        assert result.total_transactions == 4
        assert result.skipped_balance_entries == 1
        assert result.total_credits_cents == 171956
        assert result.total_debits_cents == 24540
        assert result.expenses_created == 2

    def test_ingest_file_missing(self, import_service, tmp_path):
        with pytest.raises(FileNotFoundError):
            import_service.ingest_file(tmp_path / "nope.ofx")

    def test_ingest_file_explicit_type(self, import_service, fixtures_dir, tmp_path):
        """An explicit type overrides the extension."""
        target = tmp_path / "statement.txt"
        target.write_bytes((fixtures_dir / "sample.ofx").read_bytes())

        result = import_service.ingest_file(target, file_type="ofx")

        assert result.total_transactions == 5


class TestIngestErrors:
    """Validation and failure handling."""

    def test_empty_content(self, import_service):
        with pytest.raises(ValidationError):
            import_service.ingest("", "empty.ofx", "ofx")

    def test_missing_file_name(self, import_service, sample_ofx):
        with pytest.raises(ValidationError):
            import_service.ingest(sample_ofx, "  ", "ofx")

    def test_unsupported_type(self, import_service):
        with pytest.raises(ValidationError, match="Unsupported file type 'pdf'"):
            import_service.ingest("%PDF-1.4", "statement.pdf", "pdf")

    def test_parse_failure_records_failed_import(self, import_service, temp_db):
        """Unreadable content leaves a failed import behind."""
        with pytest.raises(ProcessingError) as exc_info:
            import_service.ingest("foo;bar\n1;2\n", "broken.csv", "csv")

        failed = temp_db.get_import(exc_info.value.details["import_id"])
        assert failed.status == ImportStatus.FAILED
        assert "date column" in failed.error_message
        assert temp_db.list_bank_transactions() == []

    def test_insert_failure_marks_import_failed(
        self, import_service, temp_db, sample_ofx, monkeypatch
    ):
        """A storage failure fails the import and creates no expenses."""

        def boom(import_id, transactions):
            raise RuntimeError("disk full")

        monkeypatch.setattr(temp_db, "create_bank_transactions", boom)

        with pytest.raises(ProcessingError) as exc_info:
            import_service.ingest(sample_ofx, "march.ofx", "ofx")

        failed = temp_db.get_import(exc_info.value.details["import_id"])
        assert failed.status == ImportStatus.FAILED
        assert failed.error_message == "disk full"
        assert temp_db.list_expenses() == []

    def test_retry_after_failure(self, import_service, temp_db, sample_ofx, monkeypatch):
        """A failed import doesn't block re-importing the same file."""

        def boom(import_id, transactions):
            raise RuntimeError("disk full")

        with monkeypatch.context() as m:
            m.setattr(temp_db, "create_bank_transactions", boom)
            with pytest.raises(ProcessingError):
                import_service.ingest(sample_ofx, "march.ofx", "ofx")

        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        assert result.total_transactions == 5

    def test_expense_store_failure_still_completes(
        self, import_service, temp_db, sample_ofx, lock_table
    ):
        """Refused expense rows leave the import completed and its hash held."""
        lock_table("expenses")

        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        assert result.expenses_created == 0
        assert temp_db.get_import(result.import_id).status == ImportStatus.COMPLETED
        assert temp_db.list_expenses() == []
        with pytest.raises(ConflictError):
            import_service.ingest(sample_ofx, "march.ofx", "ofx")

    def test_completion_failure_marks_import_failed(
        self, import_service, temp_db, sample_ofx, lock_table
    ):
        """A refused completion fails the import instead of leaving it processing."""
        lock_table("bank_imports", "UPDATE OF status", "WHEN NEW.status = 'completed'")

        with pytest.raises(ProcessingError) as exc_info:
            import_service.ingest(sample_ofx, "march.ofx", "ofx")

        failed = temp_db.get_import(exc_info.value.details["import_id"])
        assert failed.status == ImportStatus.FAILED
        assert "bank_imports locked" in failed.error_message
        assert temp_db.list_bank_transactions(import_id=failed.id) == []
        assert temp_db.find_import_by_hash(failed.content_hash, ImportStatus.PROCESSING) is None


class TestQueries:
    """Listing and summarizing imports."""

    def test_get_import_not_found(self, import_service):
        with pytest.raises(NotFoundError, match="Import 999 not found"):
            import_service.get_import(999)

    def test_list_transactions_unknown_import(self, import_service):
        with pytest.raises(NotFoundError):
            import_service.list_transactions(import_id=999)

    def test_list_transactions_filters(self, import_service, sample_ofx):
        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")

        credits = import_service.list_transactions(result.import_id, direction=Direction.CREDIT)

        assert [t.amount_cents for t in credits] == [15000, 9700, 321]

    def test_summarize(self, import_service, temp_db, sample_ofx):
        result = import_service.ingest(sample_ofx, "march.ofx", "ofx")
        pix = next(t for t in result.transactions if t.fit_id == "20240320001")
        temp_db.ignore_bank_transaction(pix.id, None, pix.created_at)

        summary = import_service.summarize(result.import_id)

        assert summary == {
            "total": 5,
            "credits": 25021,
            "debits": 13490,
            "matched": 0,
            "unmatched": 4,
            "ignored": 1,
        }


def test_file_type_from_name():
    assert file_type_from_name("Extrato.OFX") == "ofx"
    assert file_type_from_name("fatura.xlsx") == "xlsx"
    assert file_type_from_name("README") is None


def test_content_hash_matches_for_text_and_bytes():
    assert content_hash("abc") == content_hash(b"abc")
    assert len(content_hash("abc")) == 64
