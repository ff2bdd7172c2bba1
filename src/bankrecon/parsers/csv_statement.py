"""CSV statement parser for Brazilian bank exports."""

import csv
import io
from typing import Optional

from bankrecon.domain.entities import Direction
from bankrecon.domain.errors import StatementParseError
from bankrecon.parsers.base import (
    ParsedStatement,
    RawTransaction,
    decode_text,
    synthetic_external_id,
)
from bankrecon.utils.amount_parser import parse_cents
from bankrecon.utils.date_parser import parse_date, strip_accents

# Header synonyms, compared after lowercasing and stripping accents
COLUMN_SYNONYMS = {
    "date": {
        "data",
        "date",
        "data lancamento",
        "data de lancamento",
        "data movimento",
        "data do movimento",
        "data mov.",
        "dt. lancamento",
        "posted date",
        "transaction date",
    },
    "description": {
        "descricao",
        "description",
        "historico",
        "lancamento",
        "memo",
        "detalhes",
        "details",
        "estabelecimento",
    },
    "amount": {
        "valor",
        "valor (r$)",
        "valor r$",
        "amount",
        "value",
        "montante",
    },
    "credit": {
        "credito",
        "credito (r$)",
        "credit",
        "entrada",
        "entradas",
    },
    "debit": {
        "debito",
        "debito (r$)",
        "debit",
        "saida",
        "saidas",
    },
}


def parse_csv(content: str | bytes) -> ParsedStatement:
    """Parse a CSV bank export.

    The separator is ``;`` when the header line contains one, ``,`` otherwise.
    Columns are located by header synonyms; either a single signed amount
    column or a credit/debit pair must be present, and a date column is
    mandatory. Rows without a parseable date or with a zero amount are skipped.

    Args:
        content: Raw CSV text or bytes

    Returns:
        ParsedStatement with synthetic external ids and the period derived
        from the posted dates

    Raises:
        StatementParseError: If the header has no date or amount columns
    """
    text = decode_text(content)
    lines = text.splitlines()
    header_index = next((i for i, line in enumerate(lines) if line.strip()), None)
    if header_index is None:
        return ParsedStatement()

    header_line = lines[header_index]
    delimiter = ";" if ";" in header_line else ","
    reader = csv.reader(io.StringIO("\n".join(lines[header_index:])), delimiter=delimiter)

    header = next(reader)
    columns = _locate_columns(header)
    if "date" not in columns:
        raise StatementParseError(
            "CSV file has no date column",
            details={"header": header},
        )
    if "amount" not in columns and "credit" not in columns and "debit" not in columns:
        raise StatementParseError(
            "CSV file has no amount, credit or debit column",
            details={"header": header},
        )

    statement = ParsedStatement()
    for row_index, row in enumerate(reader, start=1):
        txn = _parse_row(row, row_index, columns, decimal_comma=delimiter == ";")
        if txn is not None:
            statement.transactions.append(txn)

    statement.fill_period_from_transactions()
    return statement


def _locate_columns(header: list[str]) -> dict[str, int]:
    columns: dict[str, int] = {}
    for index, name in enumerate(header):
        normalized = strip_accents(name).strip().strip('"').lower()
        for key, synonyms in COLUMN_SYNONYMS.items():
            if key not in columns and normalized in synonyms:
                columns[key] = index
    return columns


def _cell(row: list[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _parse_row(
    row: list[str], row_index: int, columns: dict[str, int], decimal_comma: bool = False
) -> Optional[RawTransaction]:
    date_str = _cell(row, columns["date"])
    if not date_str:
        return None
    try:
        posted_date = parse_date(date_str)
    except ValueError:
        return None

    try:
        if "amount" in columns:
            signed_cents = parse_cents(_cell(row, columns["amount"]), decimal_comma=decimal_comma)
        else:
            credit = _optional_cents(_cell(row, columns.get("credit")), decimal_comma)
            debit = _optional_cents(_cell(row, columns.get("debit")), decimal_comma)
            # Debit columns are exported both signed and unsigned
            signed_cents = abs(credit) if credit else -abs(debit)
    except ValueError:
        return None

    if signed_cents == 0:
        return None

    direction = Direction.CREDIT if signed_cents > 0 else Direction.DEBIT
    amount_cents = abs(signed_cents)
    return RawTransaction(
        direction=direction,
        posted_date=posted_date,
        amount_cents=amount_cents,
        external_id=synthetic_external_id(posted_date, row_index, amount_cents),
        memo=_cell(row, columns.get("description")),
    )


def _optional_cents(value: str, decimal_comma: bool = False) -> int:
    if not value:
        return 0
    return parse_cents(value, decimal_comma=decimal_comma)
