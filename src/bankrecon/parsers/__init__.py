"""Bank statement format parsers.

Every parser is a pure function of the file content; they never read files
or talk to the database.
"""

from datetime import date
from typing import Optional

from bankrecon.domain.entities import FileType
from bankrecon.domain.errors import ValidationError, unsupported_file_type
from bankrecon.parsers.base import ParsedStatement, RawTransaction
from bankrecon.parsers.csv_statement import parse_csv
from bankrecon.parsers.ofx import parse_ofx
from bankrecon.parsers.xlsx import parse_xlsx


def parse_statement(
    content: str | bytes, file_type: str, reference_date: Optional[date] = None
) -> ParsedStatement:
    """Parse statement content with the parser for ``file_type``.

    Args:
        content: Raw file content (text for OFX/CSV; bytes or base64 text for
            spreadsheets)
        file_type: One of ofx, csv, xlsx, xls
        reference_date: Due date used by the spreadsheet parser when the
            sheet does not state one

    Raises:
        ValidationError: If the file type is not supported
        StatementParseError: If the content cannot be read at all
    """
    try:
        kind = FileType(str(file_type).strip().lower())
    except ValueError:
        raise ValidationError(unsupported_file_type(file_type))

    if kind is FileType.OFX:
        return parse_ofx(content)
    if kind is FileType.CSV:
        return parse_csv(content)
    return parse_xlsx(content, reference_date=reference_date)


__all__ = [
    "ParsedStatement",
    "RawTransaction",
    "parse_statement",
    "parse_ofx",
    "parse_csv",
    "parse_xlsx",
]
