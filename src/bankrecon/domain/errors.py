"""Shared domain error messages and error types."""

from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. Each category carries the
    HTTP-equivalent status used when the error is reported to a caller.
    """

    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        """Return the structured ``{error, details}`` payload."""
        return {"error": self.message, "details": self.details}


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    status_code = 400


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    status_code = 404


class ConflictError(DomainError):
    """Domain conflict, such as a duplicate file or an already-matched transaction."""

    status_code = 409


class ProcessingError(DomainError):
    """Internal failure while processing a statement or persisting its rows."""

    status_code = 500


class StatementParseError(ProcessingError):
    """A statement file could not be read at all."""


def unsupported_file_type(file_type: Optional[str]) -> str:
    """Return message for an unsupported statement file type."""
    return f"Unsupported file type '{file_type}'. Supported types: csv, ofx, xls, xlsx"


def duplicate_file(import_id: int, file_name: str) -> str:
    """Return message for a statement that was already imported."""
    return f"This file was already imported as import {import_id} ('{file_name}')"


def import_not_found(import_id: int) -> str:
    """Return message for missing import."""
    return f"Import {import_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing bank transaction."""
    return f"Bank transaction {transaction_id} not found"


def target_not_found(matched_type: str, matched_id: int) -> str:
    """Return message for a missing invoice or expense."""
    return f"{matched_type.capitalize()} {matched_id} not found"


def transaction_not_unmatched(transaction_id: int, status: str) -> str:
    """Return message when a transaction already left the unmatched state."""
    return f"Bank transaction {transaction_id} is already {status}"


def category_not_found(name: str) -> str:
    """Return message for missing expense category."""
    return f"Expense category '{name}' not found"
