"""
Duplicate Transaction Detector Module

Detects whether a newly parsed M-Pesa transaction was already recorded.
Strict matching on reference codes, fuzzy matching on amount, date and recipient.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from pathlib import Path

from .config import MATCHING_RULES_FILE, load_rules
from .models import StoredTransaction
from .parsers.base import ParsedTransaction, to_naive_local
from .recipients import is_partial_match, normalize_recipient_name

logger = logging.getLogger(__name__)


class DuplicateConfidence(Enum):
    """Confidence that a candidate is a duplicate."""
    EXACT = "exact"
    LIKELY = "likely"
    POSSIBLE = "possible"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    DuplicateConfidence.EXACT: 3,
    DuplicateConfidence.LIKELY: 2,
    DuplicateConfidence.POSSIBLE: 1,
    DuplicateConfidence.NONE: 0,
}

REASON_REFERENCE = "M-PESA reference code matches"
REASON_AMOUNT = "Same amount"
REASON_DATE = "Within {days} days"
REASON_RECIPIENT = "Same recipient"


@dataclass
class DuplicateMatch:
    """A stored transaction that may duplicate the parsed one."""

    transaction: StoredTransaction
    confidence: DuplicateConfidence
    match_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction.id,
            "confidence": self.confidence.value,
            "match_reasons": list(self.match_reasons),
        }


@dataclass
class DuplicateDetectionResult:
    """Result of a duplicate check."""

    is_duplicate: bool = False
    matches: list[DuplicateMatch] = field(default_factory=list)
    highest_confidence: DuplicateConfidence = DuplicateConfidence.NONE

    def to_dict(self) -> dict:
        return {
            "is_duplicate": self.is_duplicate,
            "matches": [m.to_dict() for m in self.matches],
            "highest_confidence": self.highest_confidence.value,
        }


class DuplicateDetector:
    """Detects duplicate transactions against previously stored ones."""

    # Thresholds
    AMOUNT_TOLERANCE = Decimal("1")  # Absolute KES difference
    DATE_TOLERANCE_DAYS = 2

    def __init__(
        self,
        config_dir: Path | str | None = None,
        amount_tolerance: Decimal | float | None = None,
        date_tolerance_days: int | None = None
    ):
        """Initialize the duplicate detector.

        Args:
            config_dir: Path to configuration directory
            amount_tolerance: Amounts closer than this are the same
            date_tolerance_days: Days within which timestamps are the same
        """
        rules = load_rules(config_dir, MATCHING_RULES_FILE, "duplicate_detection")

        self.amount_tolerance = Decimal(str(
            amount_tolerance if amount_tolerance is not None
            else rules.get("amount_tolerance", self.AMOUNT_TOLERANCE)
        ))
        self.date_tolerance_days = int(
            date_tolerance_days if date_tolerance_days is not None
            else rules.get("date_tolerance_days", self.DATE_TOLERANCE_DAYS)
        )
        self.date_tolerance = timedelta(days=self.date_tolerance_days)

    def detect(
        self,
        parsed: ParsedTransaction,
        existing: list[StoredTransaction]
    ) -> DuplicateDetectionResult:
        """Detect potential duplicates for a parsed transaction.

        Args:
            parsed: Newly parsed transaction
            existing: Previously stored transactions

        Returns:
            DuplicateDetectionResult with matches sorted by confidence
        """
        matches = []
        parsed_recipient = normalize_recipient_name(parsed.recipient)

        for candidate in existing:
            match = self._compare(parsed, parsed_recipient, candidate)
            if match:
                matches.append(match)

        # Stable sort keeps candidate order within a tier
        matches.sort(key=lambda m: m.confidence.rank, reverse=True)

        result = DuplicateDetectionResult(
            is_duplicate=bool(matches),
            matches=matches,
            highest_confidence=matches[0].confidence if matches else DuplicateConfidence.NONE,
        )

        logger.debug(
            f"Duplicate check against {len(existing)} transactions: "
            f"{len(matches)} matches, highest {result.highest_confidence.value}"
        )
        return result

    def detect_batch(
        self,
        parsed_transactions: list[ParsedTransaction],
        existing: list[StoredTransaction]
    ) -> list[DuplicateDetectionResult]:
        """Check several parsed transactions against the same stored set.

        Returns:
            One result per parsed transaction, in input order
        """
        return [self.detect(parsed, existing) for parsed in parsed_transactions]

    def _compare(
        self,
        parsed: ParsedTransaction,
        parsed_recipient: str,
        candidate: StoredTransaction
    ) -> DuplicateMatch | None:
        """Compare the parsed transaction with one stored candidate.

        Args:
            parsed: Parsed transaction
            parsed_recipient: Parsed recipient, already normalized
            candidate: Stored transaction

        Returns:
            DuplicateMatch, or None when the candidate does not match
        """
        # 1. Reference code match (definite duplicate)
        if self._references_match(parsed.reference, candidate.mpesa_reference):
            return DuplicateMatch(
                transaction=candidate,
                confidence=DuplicateConfidence.EXACT,
                match_reasons=[REASON_REFERENCE],
            )

        # 2. Fuzzy signals
        amount_matches = abs(parsed.amount - Decimal(str(candidate.amount))) < self.amount_tolerance
        parsed_time = to_naive_local(parsed.timestamp)
        candidate_time = to_naive_local(candidate.timestamp)
        date_matches = (
            parsed_time is not None
            and candidate_time is not None
            and abs(parsed_time - candidate_time) <= self.date_tolerance
        )
        recipient_matches = self._recipients_match(
            parsed_recipient,
            normalize_recipient_name(candidate.recipient)
        )

        reasons = []
        if amount_matches:
            reasons.append(REASON_AMOUNT)
        if date_matches:
            reasons.append(REASON_DATE.format(days=self.date_tolerance_days))
        if recipient_matches:
            reasons.append(REASON_RECIPIENT)

        # 3. Confidence assignment
        if amount_matches and date_matches and recipient_matches:
            confidence = DuplicateConfidence.LIKELY
        elif amount_matches and (date_matches or recipient_matches):
            confidence = DuplicateConfidence.POSSIBLE
        else:
            return None

        return DuplicateMatch(
            transaction=candidate,
            confidence=confidence,
            match_reasons=reasons,
        )

    def _references_match(self, parsed_ref: str | None, stored_ref: str | None) -> bool:
        if not parsed_ref or not stored_ref:
            return False
        return parsed_ref.strip().upper() == stored_ref.strip().upper()

    def _recipients_match(self, norm1: str, norm2: str) -> bool:
        if not norm1 or not norm2:
            return False
        return norm1 == norm2 or is_partial_match(norm1, norm2)


def confidence_message(confidence: DuplicateConfidence) -> str:
    """Human-readable description of a confidence level."""
    return {
        DuplicateConfidence.EXACT: "Exact match found (same M-PESA reference)",
        DuplicateConfidence.LIKELY: "Likely duplicate (amount, date, and recipient match)",
        DuplicateConfidence.POSSIBLE: "Possible duplicate (some details match)",
        DuplicateConfidence.NONE: "No duplicate found",
    }[confidence]


def recommended_action(confidence: DuplicateConfidence) -> str:
    """Suggested handling: 'merge', 'review' or 'add'."""
    if confidence == DuplicateConfidence.EXACT:
        return "merge"
    if confidence in (DuplicateConfidence.LIKELY, DuplicateConfidence.POSSIBLE):
        return "review"
    return "add"
