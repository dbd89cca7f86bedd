"""
Recurring Transaction Linker Module

Links transactions to active recurring obligations using M-Pesa payment
numbers (paybill, till, account) with recipient and amount as fallbacks.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from .config import MATCHING_RULES_FILE, load_rules
from .models import StoredTransaction, RecurringObligation
from .parsers.base import ParsedTransaction, extract_payment_details
from .recipients import is_partial_match, normalize_recipient_name

logger = logging.getLogger(__name__)


@dataclass
class RecurringLink:
    """A recurring obligation linked to a transaction."""

    obligation: RecurringObligation
    match_score: int
    match_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "recurring_expense_id": self.obligation.id,
            "name": self.obligation.name or self.obligation.recipient,
            "match_score": self.match_score,
            "match_reasons": list(self.match_reasons),
        }


def normalize_payment_number(number: str | None) -> str:
    if not number:
        return ""
    return "".join(number.split()).lower()


class RecurringLinker:
    """Links transactions to recurring obligations by payment details."""

    PAYBILL_POINTS = 50
    ACCOUNT_POINTS = 40
    TILL_POINTS = 70
    RECIPIENT_POINTS = 30
    PARTIAL_RECIPIENT_POINTS = 20
    AMOUNT_POINTS = 20
    PARTIAL_AMOUNT_POINTS = 10

    MIN_LINK_SCORE = 50
    AMOUNT_TOLERANCE_PERCENT = 5
    PARTIAL_AMOUNT_TOLERANCE_PERCENT = 10

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize the linker.

        Args:
            config_dir: Path to configuration directory
        """
        rules = load_rules(config_dir, MATCHING_RULES_FILE, "recurring_linking")
        self.min_link_score = rules.get("min_link_score", self.MIN_LINK_SCORE)
        self.amount_tolerance_percent = Decimal(str(
            rules.get("amount_tolerance_percent", self.AMOUNT_TOLERANCE_PERCENT)
        ))
        self.partial_amount_tolerance_percent = Decimal(str(
            rules.get("partial_amount_tolerance_percent", self.PARTIAL_AMOUNT_TOLERANCE_PERCENT)
        ))

    def link(
        self,
        transaction: StoredTransaction,
        obligations: list[RecurringObligation]
    ) -> RecurringLink | None:
        """Find the active obligation a transaction pays.

        Args:
            transaction: Transaction to link
            obligations: Recurring obligations (inactive ones are ignored)

        Returns:
            Best RecurringLink scoring at least the minimum, or None
        """
        if not obligations:
            return None

        details = extract_payment_details(transaction.raw_message)
        recipient = normalize_recipient_name(transaction.recipient)

        best: RecurringLink | None = None
        highest_score = 0

        for obligation in obligations:
            if not obligation.is_active:
                continue

            score = 0
            reasons = []

            # Paybill, optionally with account number
            paybill = normalize_payment_number(obligation.paybill_number)
            if paybill and paybill == normalize_payment_number(details.paybill):
                score += self.PAYBILL_POINTS
                reasons.append("Paybill number matches")

                account = normalize_payment_number(obligation.account_number)
                if account and account == normalize_payment_number(details.account):
                    score += self.ACCOUNT_POINTS
                    reasons.append("Account number matches")

            # Till number
            till = normalize_payment_number(obligation.till_number)
            if till and till == normalize_payment_number(details.till):
                score += self.TILL_POINTS
                reasons.append("Till number matches")

            # Recipient name
            expected = normalize_recipient_name(obligation.recipient)
            if recipient and expected:
                if recipient == expected:
                    score += self.RECIPIENT_POINTS
                    reasons.append("Recipient name exact match")
                elif is_partial_match(recipient, expected):
                    score += self.PARTIAL_RECIPIENT_POINTS
                    reasons.append("Recipient name partial match")

            # Amount
            if self._amounts_match(transaction.amount, obligation.amount, self.amount_tolerance_percent):
                score += self.AMOUNT_POINTS
                reasons.append(f"Amount matches (within {self.amount_tolerance_percent}%)")
            elif self._amounts_match(transaction.amount, obligation.amount, self.partial_amount_tolerance_percent):
                score += self.PARTIAL_AMOUNT_POINTS
                reasons.append(f"Amount similar (within {self.partial_amount_tolerance_percent}%)")

            if score > highest_score and score >= self.min_link_score:
                highest_score = score
                best = RecurringLink(obligation=obligation, match_score=score, match_reasons=reasons)

        if best:
            logger.debug(f"Linked transaction {transaction.id} to recurring {best.obligation.id}")

        return best

    def link_parsed(
        self,
        parsed: ParsedTransaction,
        obligations: list[RecurringObligation]
    ) -> RecurringLink | None:
        """Link a freshly parsed transaction that has not been stored yet."""
        transaction = StoredTransaction(
            id="temp",
            amount=parsed.amount,
            recipient=parsed.recipient or "",
            timestamp=parsed.timestamp,
            mpesa_reference=parsed.reference,
            transaction_type=parsed.transaction_type,
            raw_message=parsed.raw_message,
        )
        return self.link(transaction, obligations)

    def link_batch(
        self,
        transactions: list[StoredTransaction],
        obligations: list[RecurringObligation]
    ) -> dict[str, RecurringLink]:
        """Link many transactions; only linked transaction ids appear in the result."""
        links = {}
        for transaction in transactions:
            link = self.link(transaction, obligations)
            if link:
                links[transaction.id] = link
        return links

    def confidence_for(self, score: int) -> str:
        """Confidence label: 'high', 'medium', 'low' or 'none'."""
        if score >= 80:
            return "high"
        if score >= 60:
            return "medium"
        if score >= self.min_link_score:
            return "low"
        return "none"

    def recommended_action(self, link: RecurringLink | None) -> str:
        """Suggested handling: 'auto-link', 'suggest' or 'ignore'."""
        if link is None:
            return "ignore"

        confidence = self.confidence_for(link.match_score)
        if confidence == "high":
            return "auto-link"
        if confidence in ("medium", "low"):
            return "suggest"
        return "ignore"

    def _amounts_match(self, amount: Decimal, expected: Decimal, tolerance_percent: Decimal) -> bool:
        expected = Decimal(str(expected))
        tolerance = expected * tolerance_percent / 100
        return abs(Decimal(str(amount)) - expected) <= tolerance
