"""OFX statement parser.

OFX 1.x files are SGML-like and frequently omit closing tags, so fields are
read as ``<TAG>value`` up to the next tag or line break instead of through an
XML parser.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from bankrecon.domain.entities import Direction
from bankrecon.parsers.base import ParsedStatement, RawTransaction, decode_text
from bankrecon.utils.amount_parser import to_cents
from bankrecon.utils.date_parser import parse_ofx_date

CREDIT_TYPES = {"CREDIT", "DEP", "INT", "DIV", "DIRECTDEP"}
DEBIT_TYPES = {"DEBIT", "PAYMENT", "CHECK", "ATM", "POS", "FEE", "SRVCHG", "DIRECTDEBIT", "REPEATPMT"}


def parse_ofx(content: str | bytes) -> ParsedStatement:
    """Parse an OFX document.

    Args:
        content: Raw OFX text or bytes

    Returns:
        ParsedStatement with bank/account ids, the declared period and one
        RawTransaction per well-formed ``<STMTTRN>`` block. Blocks missing the
        type, posted date, amount or FITID are skipped.
    """
    raw = decode_text(content)
    statement = ParsedStatement(
        bank_id=_header_field(raw, "BANKID"),
        account_id=_header_field(raw, "ACCTID"),
    )

    dt_start = re.search(r"<DTSTART>\s*(\d{8})", raw, re.IGNORECASE)
    dt_end = re.search(r"<DTEND>\s*(\d{8})", raw, re.IGNORECASE)
    if dt_start:
        statement.period_start = parse_ofx_date(dt_start.group(1))
    if dt_end:
        statement.period_end = parse_ofx_date(dt_end.group(1))

    blocks = re.split(r"<STMTTRN>", raw, flags=re.IGNORECASE)
    for block in blocks[1:]:
        end = re.search(r"</STMTTRN>", block, re.IGNORECASE)
        content_block = block[: end.start()] if end else block
        txn = _parse_block(content_block)
        if txn is not None:
            statement.transactions.append(txn)

    return statement


def _parse_block(block: str) -> Optional[RawTransaction]:
    trn_type = _field(block, "TRNTYPE")
    dt_posted = _field(block, "DTPOSTED")
    trn_amt = _field(block, "TRNAMT")
    fit_id = _field(block, "FITID")
    memo = _field(block, "MEMO") or _field(block, "NAME") or ""

    if not (trn_type and dt_posted and trn_amt and fit_id):
        return None

    try:
        posted_date = parse_ofx_date(dt_posted)
        amount = Decimal(trn_amt.replace(",", "."))
    except (ValueError, InvalidOperation):
        return None

    # Explicit types win; generic ones (OTHER, XFER) fall back to the sign
    trn_type = trn_type.upper()
    if trn_type in CREDIT_TYPES:
        direction = Direction.CREDIT
    elif trn_type in DEBIT_TYPES:
        direction = Direction.DEBIT
    else:
        direction = Direction.CREDIT if amount > 0 else Direction.DEBIT

    return RawTransaction(
        direction=direction,
        posted_date=posted_date,
        amount_cents=abs(to_cents(amount)),
        external_id=fit_id,
        memo=memo,
    )


def _field(block: str, name: str) -> Optional[str]:
    match = re.search(rf"<{name}>([^<\r\n]+)", block, re.IGNORECASE)
    if match is None:
        return None
    value = match.group(1).strip()
    return value or None


def _header_field(raw: str, name: str) -> Optional[str]:
    match = re.search(rf"<{name}>\s*([^\s<]+)", raw, re.IGNORECASE)
    return match.group(1) if match else None
