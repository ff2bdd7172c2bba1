"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: status columns are stored as plain
strings and come back as the domain enums.
"""

from bankrecon.domain import entities as domain
from bankrecon.database.models import (
    StatementImport as ORMStatementImport,
    BankTransaction as ORMBankTransaction,
    Invoice as ORMInvoice,
    Expense as ORMExpense,
    ExpenseCategory as ORMExpenseCategory,
    CategoryRule as ORMCategoryRule,
)


def statement_import_to_domain(orm_import: ORMStatementImport) -> domain.StatementImport:
    """Convert SQLAlchemy StatementImport model to domain StatementImport entity."""
    return domain.StatementImport(
        id=orm_import.id,
        file_name=orm_import.file_name,
        file_type=domain.FileType(orm_import.file_type),
        bank_id=orm_import.bank_id,
        account_id=orm_import.account_id,
        period_start=orm_import.period_start,
        period_end=orm_import.period_end,
        status=domain.ImportStatus(orm_import.status),
        content_hash=orm_import.content_hash,
        total_transactions=orm_import.total_transactions or 0,
        total_credits_cents=orm_import.total_credits_cents or 0,
        total_debits_cents=orm_import.total_debits_cents or 0,
        skipped_balance_entries=orm_import.skipped_balance_entries or 0,
        error_message=orm_import.error_message,
        imported_by=orm_import.imported_by,
        created_at=orm_import.created_at,
    )


def bank_transaction_to_domain(orm_txn: ORMBankTransaction) -> domain.BankTransaction:
    """Convert SQLAlchemy BankTransaction model to domain BankTransaction entity."""
    return domain.BankTransaction(
        id=orm_txn.id,
        import_id=orm_txn.import_id,
        fit_id=orm_txn.fit_id,
        direction=domain.Direction(orm_txn.direction),
        posted_date=orm_txn.posted_date,
        amount_cents=orm_txn.amount_cents,
        memo=orm_txn.memo or "",
        parsed_type=orm_txn.parsed_type,
        counterparty_name=orm_txn.counterparty_name,
        counterparty_document=orm_txn.counterparty_document,
        is_balance_entry=bool(orm_txn.is_balance_entry),
        match_status=domain.MatchStatus(orm_txn.match_status),
        match_confidence=(
            domain.Confidence(orm_txn.match_confidence) if orm_txn.match_confidence else None
        ),
        matched_type=domain.MatchTarget(orm_txn.matched_type) if orm_txn.matched_type else None,
        matched_id=orm_txn.matched_id,
        matched_at=orm_txn.matched_at,
        matched_by=orm_txn.matched_by,
        processor_fee_cents=orm_txn.processor_fee_cents,
        created_at=orm_txn.created_at,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        amount_cents=orm_invoice.amount_cents,
        due_date=orm_invoice.due_date,
        status=domain.InvoiceStatus(orm_invoice.status),
        student_name=orm_invoice.student_name,
        description=orm_invoice.description,
        payment_date=orm_invoice.payment_date,
    )


def expense_to_domain(orm_expense: ORMExpense) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain Expense entity."""
    return domain.Expense(
        id=orm_expense.id,
        amount_cents=orm_expense.amount_cents,
        due_date=orm_expense.due_date,
        status=domain.ExpenseStatus(orm_expense.status),
        description=orm_expense.description,
        category_id=orm_expense.category_id,
        payment_date=orm_expense.payment_date,
        notes=orm_expense.notes,
        source=domain.ExpenseSource(orm_expense.source),
    )


def expense_category_to_domain(orm_category: ORMExpenseCategory) -> domain.ExpenseCategory:
    """Convert SQLAlchemy ExpenseCategory model to domain ExpenseCategory entity."""
    return domain.ExpenseCategory(
        id=orm_category.id,
        name=orm_category.name,
        created_at=orm_category.created_at,
    )


def category_rule_to_domain(orm_rule: ORMCategoryRule) -> domain.CategoryRule:
    """Convert SQLAlchemy CategoryRule model to domain CategoryRule entity."""
    return domain.CategoryRule(
        id=orm_rule.id,
        keyword=orm_rule.keyword,
        category_id=orm_rule.category_id,
        priority=orm_rule.priority,
        created_at=orm_rule.created_at,
    )
