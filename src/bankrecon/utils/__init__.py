"""Utility functions for bankrecon."""

from bankrecon.utils.date_parser import parse_date
from bankrecon.utils.amount_parser import parse_amount, to_cents, format_cents

__all__ = ["parse_date", "parse_amount", "to_cents", "format_cents"]
