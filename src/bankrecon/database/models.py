"""SQLAlchemy models for bankrecon database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Index,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

# Imports still holding their content hash; failed imports can be retried
ACTIVE_IMPORT_CLAUSE = "status IN ('processing', 'completed')"


class StatementImport(Base):
    """Statement file ingestion model."""

    __tablename__ = "bank_imports"

    id = Column(Integer, primary_key=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    bank_id = Column(String, nullable=True)
    account_id = Column(String, nullable=True)
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="processing")
    content_hash = Column(String, nullable=False, index=True)
    total_transactions = Column(Integer, nullable=False, default=0)
    total_credits_cents = Column(Integer, nullable=False, default=0)
    total_debits_cents = Column(Integer, nullable=False, default=0)
    skipped_balance_entries = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    imported_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # At most one in-flight or completed import per file content
    __table_args__ = (
        Index(
            "uq_bank_imports_active_hash",
            "content_hash",
            unique=True,
            sqlite_where=text(ACTIVE_IMPORT_CLAUSE),
            postgresql_where=text(ACTIVE_IMPORT_CLAUSE),
        ),
    )

    # Relationships
    transactions = relationship(
        "BankTransaction", back_populates="statement_import", cascade="all, delete-orphan"
    )


class BankTransaction(Base):
    """Bank statement line model."""

    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True)
    import_id = Column(Integer, ForeignKey("bank_imports.id"), nullable=False)
    fit_id = Column(String, nullable=False)
    direction = Column(String, nullable=False)
    posted_date = Column(Date, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    memo = Column(String, nullable=False, default="")
    parsed_type = Column(String, nullable=False)
    counterparty_name = Column(String, nullable=True)
    counterparty_document = Column(String, nullable=True)
    is_balance_entry = Column(Boolean, default=False, nullable=False)
    match_status = Column(String, default="unmatched", nullable=False)
    match_confidence = Column(String, nullable=True)
    matched_type = Column(String, nullable=True)
    matched_id = Column(Integer, nullable=True)
    matched_at = Column(DateTime, nullable=True)
    matched_by = Column(String, nullable=True)
    processor_fee_cents = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # FITIDs are only unique within one statement
    __table_args__ = (UniqueConstraint("import_id", "fit_id", name="uq_import_fit_id"),)

    # Relationships
    statement_import = relationship("StatementImport", back_populates="transactions")


class Invoice(Base):
    """Receivable model (owned by billing)."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    amount_cents = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="pending")
    student_name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    payment_date = Column(Date, nullable=True)


class ExpenseCategory(Base):
    """Expense category model."""

    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    rules = relationship("CategoryRule", back_populates="category", cascade="all, delete-orphan")


class Expense(Base):
    """Payable model (owned by finance)."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    amount_cents = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="pending")
    description = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("expense_categories.id"), nullable=True)
    payment_date = Column(Date, nullable=True)
    notes = Column(String, nullable=True)
    source = Column(String, nullable=False, default="manual")


class CategoryRule(Base):
    """Keyword to expense category rule model."""

    __tablename__ = "expense_category_rules"

    id = Column(Integer, primary_key=True)
    keyword = Column(String, nullable=False)
    category_id = Column(Integer, ForeignKey("expense_categories.id"), nullable=False)
    priority = Column(Integer, nullable=False, default=5)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    category = relationship("ExpenseCategory", back_populates="rules")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
