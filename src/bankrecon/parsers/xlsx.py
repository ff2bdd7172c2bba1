"""XLSX statement parser for credit-card statements.

Card statements exported as spreadsheets follow no common layout: headers,
blank padding columns and summary lines move around from bank to bank. This
parser scans cells heuristically instead of relying on fixed columns:

- the first rows carry the bank name, the card's final digits and the due
  date ("vencimento"), which anchors year-less transaction dates;
- a transaction row starts with a date, followed by a description and ends
  with the amount as its last numeric cell;
- amounts use the card convention: positive is a purchase (debit), negative
  a payment or refund (credit).
"""

import base64
import binascii
import io
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from bankrecon.domain.entities import Direction
from bankrecon.domain.errors import StatementParseError
from bankrecon.parsers.base import ParsedStatement, RawTransaction, synthetic_external_id
from bankrecon.utils.amount_parser import parse_amount, to_cents
from bankrecon.utils.date_parser import (
    excel_serial_to_date,
    infer_year,
    parse_date,
    parse_day_month,
    strip_accents,
)

HEADER_SCAN_ROWS = 30
DATE_CELL_LOOKAHEAD = 3

# Checked in order; the first keyword found in the header rows wins
BANK_KEYWORDS = [
    ("nubank", "nubank"),
    ("itau", "itau"),
    ("bradesco", "bradesco"),
    ("santander", "santander"),
    ("banco do brasil", "banco_do_brasil"),
    ("ourocard", "banco_do_brasil"),
    ("caixa", "caixa"),
    ("banco inter", "inter"),
    ("c6 bank", "c6"),
    ("sicredi", "sicredi"),
    ("sicoob", "sicoob"),
    ("btg", "btg"),
]

CURRENCY_LABELS = {"r$", "brl", "us$", "usd", "$", "reais"}

NON_TRANSACTION_RE = re.compile(
    r"^(sub)?total\b"
    r"|saldo (da )?fatura"
    r"|saldo anterior"
    r"|pagamento minimo"
    r"|^(descricao|lancamentos?|historico|estabelecimento|data|valor)( \(r\$\))?$"
    r"|repasse de iof"
    r"|^iof\b"
)

_FULL_DATE_TEXT_RE = re.compile(r"(\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}|\d{4}-\d{2}-\d{2})")
_FINAL_DIGITS_RE = re.compile(r"final\s*:?\s*(\d{4})")

# Excel serials between 1982 and 2064, so plain amounts are not read as dates
SERIAL_RANGE = (30000, 60000)


def parse_xlsx(content: bytes | str, reference_date: Optional[date] = None) -> ParsedStatement:
    """Parse a credit-card statement spreadsheet.

    Args:
        content: Workbook bytes, or the same bytes base64-encoded
        reference_date: Due date to anchor year-less dates when the sheet
            has no "vencimento" label

    Returns:
        ParsedStatement; the period spans the posted dates found

    Raises:
        StatementParseError: If the workbook cannot be opened
    """
    rows = _read_rows(_to_bytes(content))

    statement = ParsedStatement()
    header_rows = rows[:HEADER_SCAN_ROWS]
    statement.bank_id = _detect_bank(header_rows)
    statement.account_id = _detect_final_digits(header_rows)

    due_date = _detect_due_date(header_rows) or reference_date or _latest_full_date(rows)
    if due_date is None:
        due_date = date.today()

    for row_number, row in enumerate(rows, start=1):
        txn = _parse_row(row, row_number, due_date)
        if txn is not None:
            statement.transactions.append(txn)

    statement.fill_period_from_transactions()
    return statement


def _to_bytes(content: bytes | str) -> bytes:
    if isinstance(content, bytes):
        return content
    try:
        return base64.b64decode(content, validate=False)
    except (binascii.Error, ValueError) as e:
        raise StatementParseError("Spreadsheet content is not valid base64", details=str(e))


def _read_rows(data: bytes) -> list[list[Any]]:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        raise StatementParseError("Could not open spreadsheet", details=str(e))
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _text(value: Any) -> str:
    if value is None:
        return ""
    return strip_accents(str(value)).strip().lower()


def _detect_bank(rows: list[list[Any]]) -> Optional[str]:
    texts = [_text(cell) for row in rows for cell in row if isinstance(cell, str)]
    for keyword, bank_id in BANK_KEYWORDS:
        if any(keyword in text for text in texts):
            return bank_id
    return None


def _detect_final_digits(rows: list[list[Any]]) -> Optional[str]:
    for row in rows:
        for cell in row:
            if isinstance(cell, str):
                match = _FINAL_DIGITS_RE.search(_text(cell))
                if match:
                    return match.group(1)
    return None


def _detect_due_date(rows: list[list[Any]]) -> Optional[date]:
    for row_index, row in enumerate(rows):
        for col_index, cell in enumerate(row):
            if not isinstance(cell, str) or "vencimento" not in _text(cell):
                continue
            # Same cell ("Vencimento: 10/04/2024")
            match = _FULL_DATE_TEXT_RE.search(cell)
            if match:
                found = _full_date(match.group(1))
                if found:
                    return found
            # Next non-empty cell to the right
            for right in row[col_index + 1:]:
                if right is None or (isinstance(right, str) and not right.strip()):
                    continue
                found = _full_date(right)
                if found:
                    return found
                break
            # Cell below
            if row_index + 1 < len(rows):
                below = rows[row_index + 1]
                if col_index < len(below):
                    found = _full_date(below[col_index])
                    if found:
                        return found
    return None


def _latest_full_date(rows: list[list[Any]]) -> Optional[date]:
    latest = None
    for row in rows:
        for cell in row[:DATE_CELL_LOOKAHEAD + 1]:
            found = _full_date(cell)
            if found and (latest is None or found > latest):
                latest = found
    return latest


def _full_date(value: Any) -> Optional[date]:
    """Return a complete date from a cell, or None for year-less or non-date values."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if float(value).is_integer() and SERIAL_RANGE[0] <= value <= SERIAL_RANGE[1]:
            return excel_serial_to_date(value)
        return None
    if isinstance(value, str) and _FULL_DATE_TEXT_RE.fullmatch(value.strip()):
        try:
            return parse_date(value)
        except ValueError:
            return None
    return None


def _cell_date(value: Any, due_date: date) -> Optional[date]:
    found = _full_date(value)
    if found:
        return found
    if not isinstance(value, str):
        return None
    day_month = parse_day_month(value)
    if day_month is None:
        return None
    day, month = day_month
    try:
        return date(infer_year(month, due_date), month, day)
    except ValueError:
        return None


def _numeric(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return parse_amount(value, decimal_comma=True)
        except ValueError:
            return None
    return None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_row(row: list[Any], row_number: int, due_date: date) -> Optional[RawTransaction]:
    # The date is one of the first few non-empty cells
    date_col = None
    posted_date = None
    seen = 0
    for index, cell in enumerate(row):
        if _is_empty(cell):
            continue
        posted_date = _cell_date(cell, due_date)
        if posted_date is not None:
            date_col = index
            break
        seen += 1
        if seen >= DATE_CELL_LOOKAHEAD:
            return None
    if date_col is None:
        return None

    description = None
    description_col = None
    for index in range(date_col + 1, len(row)):
        cell = row[index]
        if _is_empty(cell) or not isinstance(cell, str):
            continue
        text = cell.strip()
        if _text(text) in CURRENCY_LABELS or _numeric(text) is not None:
            continue
        description = text
        description_col = index
        break
    if description is None:
        return None
    if NON_TRANSACTION_RE.search(_text(description)):
        return None

    amount = None
    for index in range(len(row) - 1, description_col, -1):
        cell = row[index]
        if _is_empty(cell):
            continue
        amount = _numeric(cell)
        if amount is not None:
            break
    if amount is None:
        return None

    try:
        cents = to_cents(amount)
    except InvalidOperation:
        return None
    if cents == 0:
        return None

    # Card convention: purchases are positive
    direction = Direction.DEBIT if cents > 0 else Direction.CREDIT
    amount_cents = abs(cents)
    return RawTransaction(
        direction=direction,
        posted_date=posted_date,
        amount_cents=amount_cents,
        external_id=synthetic_external_id(posted_date, row_number, amount_cents),
        memo=description,
    )
