"""Tests for the CSV statement parser."""

import pytest
from datetime import date
from bankrecon.domain.entities import Direction
from bankrecon.domain.errors import StatementParseError
from bankrecon.parsers.csv_statement import parse_csv


def test_parse_sample_csv(fixtures_dir):
    """Rows with a date and a non-zero amount are kept."""
    statement = parse_csv((fixtures_dir / "sample.csv").read_bytes())

    assert len(statement.transactions) == 5
    first = statement.transactions[0]
    assert first.posted_date == date(2024, 3, 1)
    assert first.amount_cents == 123456
    assert first.direction == Direction.CREDIT
    assert first.memo == "PIX RECEBIDO ANA PAULA"


def test_sample_csv_period_and_directions(fixtures_dir):
    """The period spans the posted dates and the sign sets the direction."""
    statement = parse_csv((fixtures_dir / "sample.csv").read_text(encoding="utf-8"))

    assert statement.period_start == date(2024, 3, 1)
    assert statement.period_end == date(2024, 3, 15)
    directions = [t.direction for t in statement.transactions]
    assert directions == [
        Direction.CREDIT,
        Direction.DEBIT,
        Direction.DEBIT,
        Direction.CREDIT,
        Direction.CREDIT,
    ]


def test_synthetic_external_ids(fixtures_dir):
    """External ids combine date, row index and amount."""
    statement = parse_csv((fixtures_dir / "sample.csv").read_bytes())

    ids = [t.external_id for t in statement.transactions]
    assert ids[0] == "2024-03-01-1-123456"
    assert ids[1] == "2024-03-05-2-21040"
    assert ids[-1] == "2024-03-15-7-48500"


def test_brazilian_number_cell():
    """A "1.234,56" cell parses to 123456 cents."""
    statement = parse_csv('data;descricao;valor\n10/03/2024;MENSALIDADE;"1.234,56"\n')

    assert statement.transactions[0].amount_cents == 123456


def test_brazilian_lone_dot_thousands():
    """In a semicolon export "-1.500" is a fifteen hundred debit."""
    statement = parse_csv("Data;Descrição;Valor\n10/03/2024;ALUGUEL;-1.500\n")

    txn = statement.transactions[0]
    assert txn.amount_cents == 150000
    assert txn.direction == Direction.DEBIT


def test_comma_separated_english_headers():
    """Without a semicolon in the header, commas separate fields."""
    content = "Date,Description,Amount\n2024-03-10,Coffee,-4.50\n2024-03-11,Refund,12.00\n"

    statement = parse_csv(content)

    assert [t.amount_cents for t in statement.transactions] == [450, 1200]
    assert statement.transactions[0].direction == Direction.DEBIT


def test_credit_and_debit_columns():
    """Separate credit/debit columns replace a signed amount column."""
    content = (
        "Data;Histórico;Crédito;Débito\n"
        "01/03/2024;PIX RECEBIDO JOSE;200,00;\n"
        "02/03/2024;BOLETO PAGO LUZ;;150,00\n"
        "03/03/2024;TARIFA;;-9,90\n"
    )

    statement = parse_csv(content)

    assert [(t.direction, t.amount_cents) for t in statement.transactions] == [
        (Direction.CREDIT, 20000),
        (Direction.DEBIT, 15000),
        (Direction.DEBIT, 990),
    ]


def test_missing_date_column_raises():
    """A header without a date column cannot be parsed."""
    with pytest.raises(StatementParseError):
        parse_csv("descricao;valor\nALGO;10,00\n")


def test_missing_amount_columns_raises():
    """A header without amount columns cannot be parsed."""
    with pytest.raises(StatementParseError):
        parse_csv("data;descricao\n10/03/2024;ALGO\n")


def test_unparseable_rows_are_skipped():
    """Bad dates and bad amounts drop the row, not the file."""
    content = "data;descricao;valor\nontem?;X;10,00\n10/03/2024;Y;abc\n11/03/2024;Z;5,00\n"

    statement = parse_csv(content)

    assert [t.memo for t in statement.transactions] == ["Z"]


def test_empty_content():
    """An empty file yields no transactions."""
    assert parse_csv("").transactions == []
