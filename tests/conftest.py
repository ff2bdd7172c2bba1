"""Shared pytest fixtures for bankrecon tests."""

import tempfile
import os
from datetime import date, datetime, UTC
from pathlib import Path
import pytest

from sqlalchemy import create_engine, text

from bankrecon.database.factories import create_sqlite_database
from bankrecon.domain.category_rules import CategoryRuleService
from bankrecon.domain.entities import BankTransaction, Direction, MatchStatus
from bankrecon.domain.matching import MatchingService
from bankrecon.domain.review import ReviewService
from bankrecon.domain.statement_import import StatementImportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def lock_table(temp_db):
    """Return a helper that makes SQLite refuse writes to a table.

    The trigger raises inside the store, so the failure travels the same
    path a locked or full database would.
    """
    engine = create_engine(f"sqlite:///{temp_db.database_path}")

    def lock(table: str, event: str = "INSERT", when: str = "") -> None:
        trigger = (
            f"CREATE TRIGGER lock_{table} BEFORE {event} ON {table} {when} "
            f"BEGIN SELECT RAISE(ABORT, '{table} locked'); END"
        )
        with engine.begin() as conn:
            conn.execute(text(trigger))

    yield lock
    engine.dispose()


@pytest.fixture
def import_service(temp_db):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db)


@pytest.fixture
def matching_service(temp_db):
    """Create a MatchingService with a temporary database."""
    return MatchingService(temp_db)


@pytest.fixture
def review_service(temp_db):
    """Create a ReviewService with a temporary database."""
    return ReviewService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a CategoryRuleService with a temporary database."""
    return CategoryRuleService(temp_db)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_ofx(fixtures_dir):
    """Return the sample OFX statement text."""
    return (fixtures_dir / "sample.ofx").read_text(encoding="utf-8")


def make_transaction(
    id: int = 1,
    direction: Direction = Direction.CREDIT,
    posted_date: date = date(2024, 3, 10),
    amount_cents: int = 15000,
    memo: str = "PIX RECEBIDO FULANO",
    parsed_type: str = "pix_received",
    counterparty_name: str | None = None,
    match_status: MatchStatus = MatchStatus.UNMATCHED,
    is_balance_entry: bool = False,
) -> BankTransaction:
    """Build an in-memory bank transaction for pure scoring tests."""
    return BankTransaction(
        id=id,
        import_id=1,
        fit_id=f"FIT{id}",
        direction=direction,
        posted_date=posted_date,
        amount_cents=amount_cents,
        memo=memo,
        parsed_type=parsed_type,
        counterparty_name=counterparty_name,
        counterparty_document=None,
        is_balance_entry=is_balance_entry,
        match_status=match_status,
        match_confidence=None,
        matched_type=None,
        matched_id=None,
        matched_at=None,
        matched_by=None,
        processor_fee_cents=None,
        created_at=datetime.now(UTC),
    )


@pytest.fixture
def transaction_factory():
    """Return the in-memory bank transaction builder."""
    return make_transaction


def build_ofx(transactions: list[tuple[str, str, str, str, str]]) -> str:
    """Build a minimal OFX document.

    Args:
        transactions: (TRNTYPE, DTPOSTED, TRNAMT, FITID, MEMO) tuples
    """
    blocks = "\n".join(
        f"<STMTTRN>\n<TRNTYPE>{t}\n<DTPOSTED>{d}\n<TRNAMT>{a}\n<FITID>{f}\n<MEMO>{m}\n</STMTTRN>"
        for t, d, a, f, m in transactions
    )
    return (
        "OFXHEADER:100\n<OFX><BANKMSGSRSV1><STMTTRNRS><STMTRS>\n"
        "<BANKACCTFROM>\n<BANKID>0001\n<ACCTID>999-1\n</BANKACCTFROM>\n"
        "<BANKTRANLIST>\n<DTSTART>20240301\n<DTEND>20240331\n"
        f"{blocks}\n</BANKTRANLIST>\n</STMTRS></STMTTRNRS></BANKMSGSRSV1></OFX>\n"
    )


@pytest.fixture
def ofx_builder():
    """Return the minimal OFX document builder."""
    return build_ofx
