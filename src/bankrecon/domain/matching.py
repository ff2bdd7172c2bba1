"""Reconciliation matching engine.

Scores unmatched bank transactions against open invoices (credits) and
pending expenses (debits), picks the best candidate per transaction without
reusing a candidate within one run, and optionally applies the
high-confidence suggestions.

Scoring is pure and works on domain entities already loaded into memory;
only ``MatchingService`` talks to the database.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from bankrecon.database.base import Database
from bankrecon.domain.classifier import is_card_settlement
from bankrecon.domain.entities import (
    OPEN_EXPENSE_STATUSES,
    OPEN_INVOICE_STATUSES,
    BankTransaction,
    Confidence,
    Direction,
    Expense,
    ExpenseSource,
    ExpenseStatus,
    Invoice,
    MatchStatus,
    MatchTarget,
)
from bankrecon.domain.errors import NotFoundError, import_not_found
from bankrecon.logging_config import get_logger
from bankrecon.utils.amount_parser import format_cents
from bankrecon.utils.date_parser import strip_accents

logger = get_logger(__name__)

EXACT = "exact"
APPROXIMATE = "approximate"
ACQUIRER = "acquirer"

# Preferred rule when two rules give the same tier
_RULE_PREFERENCE = {EXACT: 3, APPROXIMATE: 2, ACQUIRER: 1}

# Expense descriptions are compared by their leading characters only
DESCRIPTION_PREFIX_LENGTH = 10


@dataclass(frozen=True)
class MatchingConfig:
    """Thresholds for match scoring.

    Day tiers list the largest day difference accepted for each confidence,
    strongest first.
    """

    amount_tolerance_cents: int = 50
    acquirer_fee_rate: Decimal = Decimal("0.05")
    exact_day_tiers: tuple[int, int, int] = (1, 5, 15)
    approximate_day_tiers: tuple[int, int] = (3, 10)
    acquirer_day_tiers: tuple[int, int] = (5, 15)
    processor_fee_category: str = "Processor Fees"


DEFAULT_CONFIG = MatchingConfig()


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate that passed scoring for one transaction."""

    matched_type: MatchTarget
    matched_id: int
    confidence: Confidence
    rule: str
    day_diff: int
    amount_gap_cents: int
    evidence: bool
    reason: str
    processor_fee_cents: Optional[int] = None

    def sort_key(self) -> tuple[int, int, int, int, int]:
        """Key where a larger value is a better candidate."""
        return (
            self.confidence.rank,
            -self.day_diff,
            int(self.evidence),
            -self.amount_gap_cents,
            _RULE_PREFERENCE[self.rule],
        )


@dataclass(frozen=True)
class MatchSuggestion:
    """Proposed link between a transaction and an invoice or expense."""

    transaction_id: int
    matched_type: MatchTarget
    matched_id: int
    confidence: Confidence
    reason: str
    day_diff: int
    processor_fee_cents: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "matched_type": self.matched_type.value,
            "matched_id": self.matched_id,
            "confidence": self.confidence.value,
            "reason": self.reason,
            "day_diff": self.day_diff,
            "processor_fee_cents": self.processor_fee_cents,
        }


@dataclass
class MatchStats:
    total_transactions: int = 0
    total_matches: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    auto_applied: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_transactions": self.total_transactions,
            "total_matches": self.total_matches,
            "high_confidence": self.high_confidence,
            "medium_confidence": self.medium_confidence,
            "low_confidence": self.low_confidence,
            "auto_applied": self.auto_applied,
        }


@dataclass
class MatchResult:
    """Outcome of one matching run."""

    matches: list[MatchSuggestion] = field(default_factory=list)
    stats: MatchStats = field(default_factory=MatchStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "matches": [m.to_dict() for m in self.matches],
            "stats": self.stats.to_dict(),
        }


def _tier(day_diff: int, limits: Sequence[int], levels: Sequence[Confidence]) -> Optional[Confidence]:
    for limit, level in zip(limits, levels):
        if day_diff <= limit:
            return level
    return None


def _describe_date(day_diff: int, posted: str, confidence: Confidence) -> str:
    if day_diff <= 1:
        return f"same date ({posted})"
    if confidence == Confidence.LOW:
        return f"date distant ({day_diff} days)"
    return f"date close ({day_diff} days)"


def _contains(haystacks: Iterable[Optional[str]], needle: Optional[str]) -> bool:
    if not needle or not needle.strip():
        return False
    target = strip_accents(needle).upper().strip()
    return any(target in strip_accents(h).upper() for h in haystacks if h)


def _score(
    tx: BankTransaction,
    matched_type: MatchTarget,
    matched_id: int,
    amount_cents: int,
    due_date,
    evidence: bool,
    evidence_note: str,
    allow_acquirer: bool,
    config: MatchingConfig,
) -> Optional[ScoredCandidate]:
    """Evaluate every applicable rule and keep the strongest tier."""
    day_diff = abs((tx.posted_date - due_date).days)
    diff = amount_cents - tx.amount_cents
    gap = abs(diff)
    posted = tx.posted_date.isoformat()

    results: list[ScoredCandidate] = []

    if gap == 0:
        confidence = _tier(
            day_diff, config.exact_day_tiers, (Confidence.HIGH, Confidence.MEDIUM, Confidence.LOW)
        )
        if confidence is not None:
            reason = (
                f"Exact amount ({format_cents(tx.amount_cents)}), "
                f"{_describe_date(day_diff, posted, confidence)}"
            )
            results.append(
                ScoredCandidate(
                    matched_type, matched_id, confidence, EXACT, day_diff, gap, evidence, reason
                )
            )
    elif gap <= config.amount_tolerance_cents:
        confidence = _tier(
            day_diff, config.approximate_day_tiers, (Confidence.MEDIUM, Confidence.LOW)
        )
        if confidence is not None:
            reason = (
                f"Approximate amount ({format_cents(tx.amount_cents)} vs "
                f"{format_cents(amount_cents)}, off by {format_cents(gap)}), "
                f"{_describe_date(day_diff, posted, confidence)}"
            )
            results.append(
                ScoredCandidate(
                    matched_type, matched_id, confidence, APPROXIMATE, day_diff, gap, evidence, reason
                )
            )

    if allow_acquirer and diff >= 0 and Decimal(diff) <= config.acquirer_fee_rate * amount_cents:
        confidence = _tier(day_diff, config.acquirer_day_tiers, (Confidence.HIGH, Confidence.MEDIUM))
        if confidence is not None:
            rate = (Decimal(diff) * 100 / amount_cents).quantize(Decimal("0.1")) if amount_cents else 0
            reason = (
                f"Card settlement ({format_cents(tx.amount_cents)}) net of acquirer fee "
                f"{format_cents(diff)} ({rate}%) on {format_cents(amount_cents)}, "
                f"{_describe_date(day_diff, posted, confidence)}"
            )
            results.append(
                ScoredCandidate(
                    matched_type,
                    matched_id,
                    confidence,
                    ACQUIRER,
                    day_diff,
                    gap,
                    evidence,
                    reason,
                    processor_fee_cents=diff,
                )
            )

    if not results:
        return None
    best = max(results, key=lambda c: (c.confidence.rank, _RULE_PREFERENCE[c.rule]))
    if evidence:
        best = ScoredCandidate(
            best.matched_type,
            best.matched_id,
            best.confidence,
            best.rule,
            best.day_diff,
            best.amount_gap_cents,
            best.evidence,
            f"{best.reason}, {evidence_note}",
            best.processor_fee_cents,
        )
    return best


def score_invoice(
    tx: BankTransaction, invoice: Invoice, config: MatchingConfig = DEFAULT_CONFIG
) -> Optional[ScoredCandidate]:
    """Score a credit transaction against an invoice.

    Returns:
        The candidate with its strongest tier, or None when no rule accepts it
    """
    if tx.direction != Direction.CREDIT:
        return None
    evidence = _contains((tx.memo, tx.counterparty_name), invoice.student_name)
    return _score(
        tx,
        MatchTarget.INVOICE,
        invoice.id,
        invoice.amount_cents,
        invoice.due_date,
        evidence,
        "student name found",
        is_card_settlement(tx.parsed_type, tx.memo),
        config,
    )


def score_expense(
    tx: BankTransaction, expense: Expense, config: MatchingConfig = DEFAULT_CONFIG
) -> Optional[ScoredCandidate]:
    """Score a debit transaction against an expense. Debits never use the acquirer rule."""
    if tx.direction != Direction.DEBIT:
        return None
    prefix = (expense.description or "")[:DESCRIPTION_PREFIX_LENGTH]
    evidence = _contains((tx.memo,), prefix)
    return _score(
        tx,
        MatchTarget.EXPENSE,
        expense.id,
        expense.amount_cents,
        expense.due_date,
        evidence,
        "description found",
        False,
        config,
    )


def find_matches(
    transactions: Sequence[BankTransaction],
    invoices: Sequence[Invoice],
    expenses: Sequence[Expense],
    config: MatchingConfig = DEFAULT_CONFIG,
) -> list[MatchSuggestion]:
    """Pick at most one candidate per transaction, never reusing a candidate.

    Transactions are visited by posted date, then ID, so the outcome doesn't
    depend on the order the store returned them in.
    """
    claimed: set[tuple[MatchTarget, int]] = set()
    suggestions: list[MatchSuggestion] = []

    ordered = sorted(transactions, key=lambda t: (t.posted_date, t.id))
    for tx in ordered:
        if tx.is_balance_entry or tx.match_status != MatchStatus.UNMATCHED:
            continue

        if tx.direction == Direction.CREDIT:
            scored = (score_invoice(tx, inv, config) for inv in invoices)
        else:
            scored = (score_expense(tx, exp, config) for exp in expenses)

        best: Optional[ScoredCandidate] = None
        for candidate in scored:
            if candidate is None:
                continue
            if (candidate.matched_type, candidate.matched_id) in claimed:
                continue
            if best is None or candidate.sort_key() > best.sort_key():
                best = candidate

        if best is None:
            continue
        claimed.add((best.matched_type, best.matched_id))
        suggestions.append(
            MatchSuggestion(
                transaction_id=tx.id,
                matched_type=best.matched_type,
                matched_id=best.matched_id,
                confidence=best.confidence,
                reason=best.reason,
                day_diff=best.day_diff,
                processor_fee_cents=best.processor_fee_cents,
            )
        )
    return suggestions


def post_processor_fee(
    db: Database,
    transaction: BankTransaction,
    fee_cents: int,
    category_name: str = DEFAULT_CONFIG.processor_fee_category,
) -> Optional[int]:
    """Record the acquirer fee withheld from a card settlement as a paid expense.

    Failures are logged and swallowed; the match itself is already stored.

    Returns:
        Expense ID, or None if nothing was posted
    """
    if fee_cents <= 0:
        return None
    try:
        category = db.get_expense_category_by_name(category_name)
        category_id = category.id if category else db.create_expense_category(category_name)
        expense_id = db.create_expense(
            amount_cents=fee_cents,
            due_date=transaction.posted_date,
            description=f"Acquirer fee - {transaction.counterparty_name or 'card settlement'}",
            category_id=category_id,
            status=ExpenseStatus.PAID,
            payment_date=transaction.posted_date,
            notes=f"Auto-detected from bank transaction {transaction.id}",
            source=ExpenseSource.AUTO_FEE,
        )
    except Exception:
        logger.exception(
            "processor_fee_posting_failed", transaction_id=transaction.id, fee_cents=fee_cents
        )
        return None
    logger.info(
        "processor_fee_posted",
        transaction_id=transaction.id,
        expense_id=expense_id,
        fee_cents=fee_cents,
    )
    return expense_id


class MatchingService:
    """Service for running reconciliation over stored transactions."""

    def __init__(self, db: Database, config: Optional[MatchingConfig] = None):
        """Initialize matching service.

        Args:
            db: Database instance
            config: Scoring thresholds; defaults to DEFAULT_CONFIG
        """
        self.db = db
        self.config = config or DEFAULT_CONFIG

    def run(
        self,
        import_id: Optional[int] = None,
        auto_apply: bool = False,
        matched_by: Optional[str] = None,
    ) -> MatchResult:
        """Suggest matches for unmatched transactions.

        Args:
            import_id: Restrict the run to one import
            auto_apply: Apply every high-confidence suggestion immediately
            matched_by: Acting user stamped on applied matches

        Returns:
            MatchResult with suggestions and run statistics

        Raises:
            NotFoundError: If import_id is given but doesn't exist
        """
        if import_id is not None and self.db.get_import(import_id) is None:
            raise NotFoundError(import_not_found(import_id))

        transactions = self.db.list_bank_transactions(
            import_id=import_id,
            match_status=MatchStatus.UNMATCHED,
            include_balance_entries=False,
        )
        invoices = self.db.list_invoices(statuses=OPEN_INVOICE_STATUSES)
        expenses = self.db.list_expenses(statuses=OPEN_EXPENSE_STATUSES)

        suggestions = find_matches(transactions, invoices, expenses, self.config)
        stats = MatchStats(
            total_transactions=len(transactions),
            total_matches=len(suggestions),
            high_confidence=sum(1 for s in suggestions if s.confidence == Confidence.HIGH),
            medium_confidence=sum(1 for s in suggestions if s.confidence == Confidence.MEDIUM),
            low_confidence=sum(1 for s in suggestions if s.confidence == Confidence.LOW),
        )

        if auto_apply:
            by_id = {t.id: t for t in transactions}
            for suggestion in suggestions:
                if suggestion.confidence != Confidence.HIGH:
                    continue
                if self._apply(by_id[suggestion.transaction_id], suggestion, matched_by):
                    stats.auto_applied += 1

        logger.info("matching_run_finished", import_id=import_id, **stats.to_dict())
        return MatchResult(matches=suggestions, stats=stats)

    def _apply(
        self, transaction: BankTransaction, suggestion: MatchSuggestion, matched_by: Optional[str]
    ) -> bool:
        applied = self.db.apply_match(
            transaction_id=transaction.id,
            matched_type=suggestion.matched_type,
            matched_id=suggestion.matched_id,
            match_status=MatchStatus.AUTO_MATCHED,
            confidence=suggestion.confidence,
            matched_by=matched_by,
            matched_at=datetime.now(UTC),
            processor_fee_cents=suggestion.processor_fee_cents,
        )
        if not applied:
            # Another run claimed the transaction or target first
            logger.warning(
                "auto_apply_skipped",
                transaction_id=transaction.id,
                matched_type=str(suggestion.matched_type),
                matched_id=suggestion.matched_id,
            )
            return False
        if suggestion.processor_fee_cents:
            post_processor_fee(
                self.db,
                transaction,
                suggestion.processor_fee_cents,
                self.config.processor_fee_category,
            )
        return True
