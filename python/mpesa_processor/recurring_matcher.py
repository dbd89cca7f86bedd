"""
Recurring Expense Matcher Module

Scores a parsed transaction against known recurring obligations.

Score calculation (out of 100):
- Recipient match: 40 points (20 for a partial match)
- Category match: 20 points
- Amount match: 20 points within 10%, 10 points within 20%
- Due date score: up to 20 points

Confidence levels:
- High: 80+ points
- Medium: 60-79 points
- Low: 40-59 points
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from pathlib import Path

from .config import MATCHING_RULES_FILE, load_rules
from .models import Frequency, RecurringObligation
from .parsers.base import ParsedTransaction, to_naive_local
from .recipients import is_partial_match, normalize_recipient_name

logger = logging.getLogger(__name__)


class RecurringConfidence(Enum):
    """Confidence tier of a recurring match."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class RecurringMatch:
    """Best recurring obligation for a transaction."""

    confidence: RecurringConfidence
    expense_name: str
    match_score: int = 0
    recurring_expense_id: str | None = None
    expected_amount: Decimal | None = None
    last_paid_date: datetime | None = None
    frequency: Frequency | None = None

    @property
    def is_match(self) -> bool:
        return self.recurring_expense_id is not None

    def to_dict(self) -> dict:
        return {
            "confidence": self.confidence.value,
            "recurring_expense_id": self.recurring_expense_id,
            "expense_name": self.expense_name,
            "expected_amount": float(self.expected_amount) if self.expected_amount is not None else None,
            "last_paid_date": self.last_paid_date.isoformat() if self.last_paid_date else None,
            "frequency": self.frequency.value if self.frequency else None,
            "match_score": self.match_score,
        }


class RecurringMatcher:
    """Matches transactions to recurring obligations."""

    # Points per signal
    RECIPIENT_POINTS = 40
    PARTIAL_RECIPIENT_POINTS = 20
    CATEGORY_POINTS = 20
    AMOUNT_POINTS = 20
    PARTIAL_AMOUNT_POINTS = 10
    DUE_DATE_POINTS = 20

    # Thresholds
    AMOUNT_TOLERANCE = Decimal("0.10")
    PARTIAL_AMOUNT_TOLERANCE = Decimal("0.20")
    MIN_MATCH_SCORE = 40
    HIGH_CONFIDENCE_SCORE = 80
    MEDIUM_CONFIDENCE_SCORE = 60

    # Due-score shape
    GRACE_PERIOD_FRACTION = 0.2
    DUE_SOON_SCORE = 0.8
    NOT_DUE_MAX_SCORE = 0.6
    UNKNOWN_DUE_SCORE = 0.5

    DEFAULT_INTERVAL_DAYS = 30
    FREQUENCY_DAYS = {
        "weekly": 7,
        "monthly": 30,
        "quarterly": 90,
        "yearly": 365,
    }

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize the matcher.

        Args:
            config_dir: Path to configuration directory
        """
        rules = load_rules(config_dir, MATCHING_RULES_FILE, "recurring_matching")

        self.amount_tolerance = Decimal(str(rules.get("amount_tolerance", self.AMOUNT_TOLERANCE)))
        self.partial_amount_tolerance = Decimal(str(
            rules.get("partial_amount_tolerance", self.PARTIAL_AMOUNT_TOLERANCE)
        ))
        self.min_match_score = rules.get("min_match_score", self.MIN_MATCH_SCORE)
        self.frequency_days = {**self.FREQUENCY_DAYS, **(rules.get("frequency_days") or {})}

    def match(
        self,
        parsed: ParsedTransaction,
        resolved_recipient_name: str,
        suggested_category: str | None,
        obligations: list[RecurringObligation],
        now: datetime | None = None
    ) -> RecurringMatch:
        """Find the recurring obligation that best fits a transaction.

        Args:
            parsed: Parsed transaction
            resolved_recipient_name: Recipient name after resolution
            suggested_category: Category suggested for the transaction
            obligations: Known recurring obligations
            now: Reference time for due dates, defaults to datetime.now()

        Returns:
            RecurringMatch; a zero-score low-confidence result if nothing fits
        """
        no_match = RecurringMatch(
            confidence=RecurringConfidence.LOW,
            expense_name=resolved_recipient_name,
            match_score=0,
        )

        if not obligations:
            return no_match

        now = now or datetime.now()
        best: RecurringObligation | None = None
        best_score = 0.0

        for obligation in obligations:
            score = self.score(parsed, resolved_recipient_name, suggested_category, obligation, now)
            if score >= self.min_match_score and (best is None or score > best_score):
                best = obligation
                best_score = score

        if best is None:
            return no_match

        match_score = int(Decimal(str(best_score)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

        logger.debug(f"Matched recurring '{best.recipient}' with score {match_score}")

        return RecurringMatch(
            confidence=self.confidence_for(match_score),
            recurring_expense_id=best.id,
            expense_name=best.recipient,
            expected_amount=best.amount,
            last_paid_date=best.last_paid_date,
            frequency=best.frequency,
            match_score=match_score,
        )

    def match_batch(
        self,
        items: list[tuple[ParsedTransaction, str, str | None]],
        obligations: list[RecurringObligation],
        now: datetime | None = None
    ) -> list[RecurringMatch]:
        """Match several (parsed, recipient name, suggested category) items in order."""
        return [
            self.match(parsed, name, category, obligations, now)
            for parsed, name, category in items
        ]

    def score(
        self,
        parsed: ParsedTransaction,
        resolved_recipient_name: str,
        suggested_category: str | None,
        obligation: RecurringObligation,
        now: datetime
    ) -> float:
        """Raw score (0-100) of one obligation."""
        score = 0.0

        # 1. Recipient
        name = normalize_recipient_name(resolved_recipient_name)
        expected_name = normalize_recipient_name(obligation.recipient)
        if name and name == expected_name:
            score += self.RECIPIENT_POINTS
        elif is_partial_match(name, expected_name):
            score += self.PARTIAL_RECIPIENT_POINTS

        # 2. Category
        if suggested_category and obligation.category == suggested_category:
            score += self.CATEGORY_POINTS

        # 3. Amount
        if parsed.amount and obligation.amount:
            if self._within_tolerance(parsed.amount, obligation.amount, self.amount_tolerance):
                score += self.AMOUNT_POINTS
            elif self._within_tolerance(parsed.amount, obligation.amount, self.partial_amount_tolerance):
                score += self.PARTIAL_AMOUNT_POINTS

        # 4. Due date
        score += self.due_score(obligation.last_paid_date, obligation.frequency, now) * self.DUE_DATE_POINTS

        return score

    def due_score(
        self,
        last_paid_date: datetime | None,
        frequency: Frequency | str | None,
        now: datetime | None = None
    ) -> float:
        """How due an obligation is.

        Returns:
            1.0 when due or overdue, 0.8 within the grace period,
            otherwise 0 to 0.6 scaled by elapsed time; 0.5 if unknown
        """
        if last_paid_date is None or not frequency:
            return self.UNKNOWN_DUE_SCORE

        now = to_naive_local(now) or datetime.now()
        days_since = (now - to_naive_local(last_paid_date)).total_seconds() / 86400

        key = frequency.value if isinstance(frequency, Frequency) else str(frequency).lower()
        expected = self.frequency_days.get(key, self.DEFAULT_INTERVAL_DAYS)
        grace_period = expected * self.GRACE_PERIOD_FRACTION

        if days_since >= expected:
            return 1.0
        if days_since >= expected - grace_period:
            return self.DUE_SOON_SCORE
        return max(days_since, 0.0) / expected * self.NOT_DUE_MAX_SCORE

    def confidence_for(self, score: int) -> RecurringConfidence:
        if score >= self.HIGH_CONFIDENCE_SCORE:
            return RecurringConfidence.HIGH
        if score >= self.MEDIUM_CONFIDENCE_SCORE:
            return RecurringConfidence.MEDIUM
        return RecurringConfidence.LOW

    def _within_tolerance(self, amount: Decimal, expected: Decimal, tolerance: Decimal) -> bool:
        expected = Decimal(str(expected))
        return abs(Decimal(str(amount)) - expected) <= expected * tolerance
