"""Normalized statement model shared by all format parsers."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from bankrecon.domain.entities import Direction


@dataclass(frozen=True)
class RawTransaction:
    """A statement line as read from the file, before classification."""

    direction: Direction
    posted_date: date
    amount_cents: int
    external_id: str
    memo: str


@dataclass
class ParsedStatement:
    """Result of parsing one statement file."""

    bank_id: Optional[str] = None
    account_id: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    transactions: list[RawTransaction] = field(default_factory=list)

    def fill_period_from_transactions(self) -> None:
        """Derive the statement period from posted dates when none was declared."""
        if not self.transactions:
            return
        dates = [txn.posted_date for txn in self.transactions]
        if self.period_start is None:
            self.period_start = min(dates)
        if self.period_end is None:
            self.period_end = max(dates)


def synthetic_external_id(posted_date: date, row_index: int, amount_cents: int) -> str:
    """Build an id for formats without native transaction ids.

    Unique within one file because the row index is part of it.
    """
    return f"{posted_date.isoformat()}-{row_index}-{abs(amount_cents)}"


def decode_text(content: str | bytes) -> str:
    """Decode statement bytes, trying UTF-8 before the Windows Latin-1 codepage."""
    if isinstance(content, str):
        return content.lstrip("\ufeff")
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")
