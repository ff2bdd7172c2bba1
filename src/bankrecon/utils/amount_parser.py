"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re


_CURRENCY_RE = re.compile(r"(R\$|US\$|BRL|USD|[$€£¥])", re.IGNORECASE)
_BRL_RE = re.compile(r"R\$|BRL", re.IGNORECASE)
_THOUSANDS_ONLY_RE = re.compile(r"\d{1,3}\.\d{3}")


def parse_amount(amount_str: str, decimal_comma: bool = False) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles Brazilian and English notation:
    - "1.234,56" and "1234,56" (dot thousands, comma decimal)
    - "1,234.56" and "1234.56"
    - "R$ 123,45", "-R$ 123,45", "R$ -123,45"
    - "(123,45)" and "123,45-" (negative)

    When both separators appear, the last one is the decimal separator. A
    single comma is a decimal separator; repeated commas or dots are
    thousands separators.

    A lone dot followed by exactly three digits ("1.500") is a thousands
    separator under the comma-decimal convention, which applies when
    ``decimal_comma`` is set or the value carries an R\$ or BRL marker.

    Args:
        amount_str: Amount string
        decimal_comma: Source uses Brazilian notation (comma decimal)

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    amount_str = str(amount_str).strip()

    # Handle parentheses and trailing-minus notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]
    if amount_str.endswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[:-1]

    if _BRL_RE.search(amount_str):
        decimal_comma = True
    amount_str = _CURRENCY_RE.sub("", amount_str)
    amount_str = amount_str.replace(" ", "").replace("\xa0", "")

    if amount_str.startswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[1:]
    elif amount_str.startswith("+"):
        amount_str = amount_str[1:]

    last_comma = amount_str.rfind(",")
    last_dot = amount_str.rfind(".")
    if last_comma != -1 and last_dot != -1:
        if last_comma > last_dot:
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            amount_str = amount_str.replace(",", "")
    elif last_comma != -1:
        if amount_str.count(",") > 1:
            amount_str = amount_str.replace(",", "")
        else:
            amount_str = amount_str.replace(",", ".")
    elif amount_str.count(".") > 1:
        amount_str = amount_str.replace(".", "")
    elif decimal_comma and _THOUSANDS_ONLY_RE.fullmatch(amount_str):
        amount_str = amount_str.replace(".", "")

    if not re.fullmatch(r"\d+(\.\d+)?|\.\d+", amount_str):
        raise ValueError(f"Could not parse amount '{amount_str}'")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    return -amount if is_negative else amount


def to_cents(amount: Decimal | int | float) -> int:
    """Convert a currency amount to integer cents, rounding half up."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_cents(amount_str: str, decimal_comma: bool = False) -> int:
    """Parse an amount string straight into signed integer cents."""
    return to_cents(parse_amount(amount_str, decimal_comma=decimal_comma))


def format_cents(cents: int) -> str:
    """Format integer cents as Brazilian currency, e.g. ``R$ 1.234,56``."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    grouped = f"{whole:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{frac:02d}"
