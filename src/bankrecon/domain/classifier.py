"""Bank transaction classifier.

Assigns a semantic type to a statement line from its memo text and extracts
the counterparty. Rules are evaluated in table order and the first match
wins; the CPF/CNPJ document is extracted independently of the rule.
"""

import re
from dataclasses import dataclass
from typing import Callable, ClassVar, Optional

from bankrecon.domain.entities import Direction
from bankrecon.utils.date_parser import strip_accents

CPF_RE = re.compile(r"\d{3}\.\d{3}\.\d{3}-\d{2}")
CNPJ_RE = re.compile(r"\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}")
_TRAILING_DOCUMENT_RE = re.compile(
    r"\s*(\d{3}\.\d{3}\.\d{3}-\d{2}|\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2})\s*$"
)

REDE_NAME = "Rede (cartão)"


@dataclass(frozen=True)
class Classification:
    """Base for classification results."""

    counterparty_name: Optional[str] = None
    counterparty_document: Optional[str] = None

    kind: ClassVar[str] = ""
    is_balance_entry: ClassVar[bool] = False

    @property
    def type(self) -> str:
        return self.kind


@dataclass(frozen=True)
class BalanceEntry(Classification):
    """Informational balance line, not a real movement."""

    kind: ClassVar[str] = "balance"
    is_balance_entry: ClassVar[bool] = True


@dataclass(frozen=True)
class InvestmentReturn(Classification):
    kind: ClassVar[str] = "investment_return"


@dataclass(frozen=True)
class PixReceived(Classification):
    kind: ClassVar[str] = "pix_received"


@dataclass(frozen=True)
class PixSent(Classification):
    kind: ClassVar[str] = "pix_sent"


@dataclass(frozen=True)
class CardSettlement(Classification):
    """Card acquirer deposit, net of the acquirer fee."""

    card_type: str = "card_received"

    @property
    def type(self) -> str:
        return self.card_type


@dataclass(frozen=True)
class BoletoPaid(Classification):
    kind: ClassVar[str] = "boleto_paid"


@dataclass(frozen=True)
class UtilityPaid(Classification):
    kind: ClassVar[str] = "utility_paid"


@dataclass(frozen=True)
class OtherCredit(Classification):
    kind: ClassVar[str] = "other_credit"


@dataclass(frozen=True)
class OtherDebit(Classification):
    kind: ClassVar[str] = "other_debit"


# Card network/modality markers within "RECEBIMENTO REDE" memos
CARD_TYPES = [
    ("VISA AT", "card_visa_debit"),
    ("VISA CD", "card_visa_credit"),
    ("MAST AT", "card_master_debit"),
    ("MAST CD", "card_master_credit"),
]
CARD_SETTLEMENT_TYPES = {"card_received"} | {card_type for _, card_type in CARD_TYPES}


def extract_document(memo: str) -> Optional[str]:
    """Return the first CPF, else the first CNPJ, found in the memo."""
    match = CPF_RE.search(memo) or CNPJ_RE.search(memo)
    return match.group(0) if match else None


def name_after(memo: str, marker: str) -> Optional[str]:
    """Return the memo text after ``marker`` without a trailing CPF/CNPJ.

    Args:
        memo: Original memo text
        marker: Regular expression for the marker phrase, matched case-insensitively
    """
    match = re.search(marker, memo, re.IGNORECASE)
    if match is None:
        return None
    name = _TRAILING_DOCUMENT_RE.sub("", memo[match.end():].strip()).strip()
    return name or None


def _card_settlement(memo: str, upper: str, document: Optional[str]) -> Classification:
    card_type = "card_received"
    for marker, candidate in CARD_TYPES:
        if marker in upper:
            card_type = candidate
            break
    return CardSettlement(
        counterparty_name=REDE_NAME, counterparty_document=document, card_type=card_type
    )


Predicate = Callable[[str, Direction], bool]
Builder = Callable[[str, str, Optional[str]], Classification]

# (predicate over the accent-free uppercased memo, result builder)
RULES: list[tuple[Predicate, Builder]] = [
    (
        lambda upper, _: "SALDO TOTAL DISPONIVEL" in upper or "SALDO EM CONTA" in upper,
        lambda memo, upper, doc: BalanceEntry(),
    ),
    (
        lambda upper, _: "REND PAGO APLIC" in upper or "RENDIMENTOS" in upper,
        lambda memo, upper, doc: InvestmentReturn(counterparty_document=doc),
    ),
    (
        lambda upper, _: "PIX RECEBIDO" in upper,
        lambda memo, upper, doc: PixReceived(name_after(memo, r"PIX\s+RECEBIDO"), doc),
    ),
    (
        lambda upper, _: "PIX ENVIADO" in upper,
        lambda memo, upper, doc: PixSent(name_after(memo, r"PIX\s+ENVIADO"), doc),
    ),
    (
        lambda upper, _: "RECEBIMENTO REDE" in upper,
        _card_settlement,
    ),
    (
        lambda upper, _: "BOLETO PAGO" in upper,
        lambda memo, upper, doc: BoletoPaid(name_after(memo, r"BOLETO\s+PAGO"), doc),
    ),
    (
        lambda upper, _: "CONCESSIONARIA" in upper,
        lambda memo, upper, doc: UtilityPaid(name_after(memo, r"CONCESSION[AÁ]RIA"), doc),
    ),
    (
        lambda upper, direction: direction == Direction.CREDIT,
        lambda memo, upper, doc: OtherCredit(counterparty_document=doc),
    ),
]


def classify(memo: Optional[str], direction: Direction) -> Classification:
    """Classify a statement line.

    Args:
        memo: Memo/description text of the line
        direction: Credit or debit

    Returns:
        The first matching Classification variant; OtherDebit when no rule
        applies to a debit
    """
    memo = memo or ""
    upper = strip_accents(memo).upper()
    document = extract_document(memo)
    for predicate, build in RULES:
        if predicate(upper, direction):
            return build(memo, upper, document)
    return OtherDebit(counterparty_document=document)


def is_card_settlement(parsed_type: Optional[str], memo: Optional[str]) -> bool:
    """Tell whether a transaction is an acquirer card settlement."""
    if parsed_type in CARD_SETTLEMENT_TYPES:
        return True
    return "RECEBIMENTO REDE" in strip_accents(memo or "").upper()
