"""Manual review of match suggestions."""

from datetime import UTC, datetime
from typing import Optional, Union

from bankrecon.database.base import Database
from bankrecon.domain.entities import (
    OPEN_EXPENSE_STATUSES,
    OPEN_INVOICE_STATUSES,
    BankTransaction,
    Confidence,
    Direction,
    Expense,
    Invoice,
    MatchStatus,
    MatchTarget,
)
from bankrecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    target_not_found,
    transaction_not_found,
    transaction_not_unmatched,
)
from bankrecon.domain.matching import DEFAULT_CONFIG, post_processor_fee
from bankrecon.logging_config import get_logger
from bankrecon.utils.amount_parser import format_cents

logger = get_logger(__name__)

Candidate = Union[Invoice, Expense]

# Each target type settles transactions of one direction
_TARGET_DIRECTION = {
    MatchTarget.INVOICE: Direction.CREDIT,
    MatchTarget.EXPENSE: Direction.DEBIT,
}


class ReviewService:
    """Service for reviewer decisions on bank transactions."""

    def __init__(self, db: Database, processor_fee_category: str = DEFAULT_CONFIG.processor_fee_category):
        """Initialize review service.

        Args:
            db: Database instance
            processor_fee_category: Expense category for acquirer fees posted on approval
        """
        self.db = db
        self.processor_fee_category = processor_fee_category

    def approve(
        self,
        transaction_id: int,
        matched_type: str,
        matched_id: int,
        confidence: Optional[str] = None,
        matched_by: Optional[str] = None,
        processor_fee_cents: Optional[int] = None,
    ) -> BankTransaction:
        """Approve a suggestion, linking the transaction to its target.

        Args:
            transaction_id: Bank transaction ID
            matched_type: "invoice" or "expense"
            matched_id: Invoice or expense ID
            confidence: Confidence tier of the approved suggestion
            matched_by: Acting reviewer
            processor_fee_cents: Acquirer fee of a card settlement suggestion

        Returns:
            The updated transaction

        Raises:
            NotFoundError: If the transaction or target doesn't exist
            ConflictError: If the transaction is not unmatched or the target is not open
            ValidationError: If the target type, confidence or fee is invalid
        """
        tier = self._parse_confidence(confidence)
        if processor_fee_cents is not None and processor_fee_cents < 0:
            raise ValidationError("Processor fee cannot be negative")
        transaction = self._link(
            transaction_id,
            matched_type,
            matched_id,
            matched_by,
            confidence=tier,
            processor_fee_cents=processor_fee_cents,
        )
        if processor_fee_cents:
            post_processor_fee(self.db, transaction, processor_fee_cents, self.processor_fee_category)
        logger.info(
            "match_approved",
            transaction_id=transaction_id,
            matched_type=str(transaction.matched_type),
            matched_id=matched_id,
        )
        return transaction

    def reject(self, transaction_id: int) -> BankTransaction:
        """Discard a suggestion. The transaction stays unmatched.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        transaction = self._get_transaction(transaction_id)
        logger.info("match_rejected", transaction_id=transaction_id)
        return transaction

    def manual_match(
        self,
        transaction_id: int,
        matched_type: str,
        matched_id: int,
        matched_by: Optional[str] = None,
    ) -> BankTransaction:
        """Link a transaction to a target picked by the reviewer.

        Raises:
            NotFoundError: If the transaction or target doesn't exist
            ConflictError: If the transaction is not unmatched or the target is not open
            ValidationError: If the target type doesn't fit the transaction direction
        """
        transaction = self._link(transaction_id, matched_type, matched_id, matched_by)
        logger.info(
            "manual_match_applied",
            transaction_id=transaction_id,
            matched_type=str(transaction.matched_type),
            matched_id=matched_id,
        )
        return transaction

    def ignore(self, transaction_id: int, matched_by: Optional[str] = None) -> BankTransaction:
        """Exclude a transaction from all future matching runs.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ConflictError: If the transaction is not unmatched
        """
        transaction = self._get_transaction(transaction_id)
        self._require_unmatched(transaction)
        if not self.db.ignore_bank_transaction(transaction_id, matched_by, datetime.now(UTC)):
            raise ConflictError(transaction_not_unmatched(transaction_id, "matched"))
        logger.info("transaction_ignored", transaction_id=transaction_id)
        return self._get_transaction(transaction_id)

    def list_candidates(self, transaction_id: int, search: Optional[str] = None) -> list[Candidate]:
        """List open targets a reviewer can pick for a transaction.

        Credits are offered open invoices and debits pending expenses. The
        search text is matched case-insensitively against the student name,
        the description and the formatted amount.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        transaction = self._get_transaction(transaction_id)
        candidates: list[Candidate]
        if transaction.direction == Direction.CREDIT:
            candidates = list(self.db.list_invoices(statuses=OPEN_INVOICE_STATUSES))
        else:
            candidates = list(self.db.list_expenses(statuses=OPEN_EXPENSE_STATUSES))

        if not search or not search.strip():
            return candidates
        needle = search.strip().lower()
        return [c for c in candidates if needle in _searchable_text(c)]

    def _link(
        self,
        transaction_id: int,
        matched_type: str,
        matched_id: int,
        matched_by: Optional[str],
        confidence: Optional[Confidence] = None,
        processor_fee_cents: Optional[int] = None,
    ) -> BankTransaction:
        transaction = self._get_transaction(transaction_id)
        self._require_unmatched(transaction)

        try:
            target_type = MatchTarget(str(matched_type).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Invalid match target '{matched_type}'. Must be 'invoice' or 'expense'"
            )
        if transaction.direction != _TARGET_DIRECTION[target_type]:
            raise ValidationError(
                f"A {transaction.direction} transaction cannot be matched to an {target_type}"
            )
        self._require_open_target(target_type, matched_id)

        applied = self.db.apply_match(
            transaction_id=transaction_id,
            matched_type=target_type,
            matched_id=matched_id,
            match_status=MatchStatus.MANUAL_MATCHED,
            confidence=confidence,
            matched_by=matched_by,
            matched_at=datetime.now(UTC),
            processor_fee_cents=processor_fee_cents,
        )
        if not applied:
            raise ConflictError(
                f"Bank transaction {transaction_id} or {target_type} {matched_id} "
                "changed during review"
            )
        return self._get_transaction(transaction_id)

    def _get_transaction(self, transaction_id: int) -> BankTransaction:
        transaction = self.db.get_bank_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def _require_unmatched(self, transaction: BankTransaction) -> None:
        if transaction.match_status != MatchStatus.UNMATCHED:
            raise ConflictError(
                transaction_not_unmatched(transaction.id, transaction.match_status.value),
                details=transaction.match_fields(),
            )

    def _require_open_target(self, target_type: MatchTarget, matched_id: int) -> None:
        if target_type == MatchTarget.INVOICE:
            target: Optional[Candidate] = self.db.get_invoice(matched_id)
            open_statuses: tuple = OPEN_INVOICE_STATUSES
        else:
            target = self.db.get_expense(matched_id)
            open_statuses = OPEN_EXPENSE_STATUSES
        if target is None:
            raise NotFoundError(target_not_found(target_type.value, matched_id))
        if target.status not in open_statuses:
            raise ConflictError(
                f"{target_type.value.capitalize()} {matched_id} is already {target.status.value}"
            )

    @staticmethod
    def _parse_confidence(confidence: Optional[str]) -> Optional[Confidence]:
        if confidence is None:
            return None
        try:
            return Confidence(str(confidence).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Invalid confidence '{confidence}'. Must be 'high', 'medium' or 'low'"
            )


def _searchable_text(candidate: Candidate) -> str:
    parts = [candidate.description or "", format_cents(candidate.amount_cents)]
    if isinstance(candidate, Invoice):
        parts.append(candidate.student_name or "")
    return " ".join(parts).lower()
