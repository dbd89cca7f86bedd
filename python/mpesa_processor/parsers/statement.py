"""
M-Pesa Statement Parser

Parses exported M-Pesa full statements (PDF text or copy-paste) into transactions.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal

from .base import (
    ParsedTransaction,
    TransactionType,
    clean_counterparty,
    parse_amount,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


@dataclass
class StatementParseResult:
    """Result of parsing a statement."""

    transactions: list[ParsedTransaction] = field(default_factory=list)
    skipped_segments: int = 0
    warnings: list[str] = field(default_factory=list)
    summary: dict = field(default_factory=dict)

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


@dataclass(frozen=True)
class DetailRule:
    """Maps a statement "Details" phrasing to a counterparty and type."""

    pattern: re.Pattern
    transaction_type: TransactionType


def _detail_rule(prefix: str, transaction_type: TransactionType) -> DetailRule:
    # "<prefix> <number> - <NAME> [Acc. <account>]"
    pattern = (
        rf"^{prefix}\s+(?:[\w*]+\s*-\s*)?(?P<name>.+?)"
        r"(?:\s+Acc\.?\s*\S+)?$"
    )
    return DetailRule(re.compile(pattern, re.IGNORECASE), transaction_type)


DETAIL_RULES = [
    _detail_rule(r"Customer\s+Transfer\s+(?:of\s+Funds\s+)?to", TransactionType.SEND),
    _detail_rule(r"Merchant\s+Payment(?:\s+Online)?\s+to", TransactionType.BUY),
    _detail_rule(r"Pay\s+Bill(?:\s+Online)?\s+to", TransactionType.SEND),
    _detail_rule(r"Customer\s+Withdrawal\s+At\s+Agent\s+Till", TransactionType.WITHDRAW),
    _detail_rule(r"Deposit\s+of\s+Funds\s+at\s+Agent\s+Till", TransactionType.DEPOSIT),
    _detail_rule(r"Funds\s+received\s+from", TransactionType.RECEIVE),
    _detail_rule(r"Business\s+Payment\s+from", TransactionType.RECEIVE),
]

MONEY = r"-?\d{1,3}(?:,\d{3})+\.\d{2}|-?\d+\.\d{2}"

RECEIPT_START = r"[A-Z0-9]{10}\s+\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}"

ROW_PATTERN = re.compile(
    r"^(?P<receipt>[A-Z0-9]{10})\s+"
    r"(?P<completion_time>\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})\s+"
    r"(?P<details>.+?)\s+"
    r"(?P<status>COMPLETED|FAILED|PENDING)\s+"
    rf"(?P<amounts>(?:(?:{MONEY})\s+){{0,2}}(?:{MONEY}))\s*$",
    re.IGNORECASE,
)

SEGMENT_BOUNDARY = re.compile(rf"(?={RECEIPT_START})")

NOISE_PATTERNS = [
    re.compile(r"Page\s+\d+\s+of\s+\d+", re.IGNORECASE),
    re.compile(r"Disclaimer:.*?conditions\s+apply\.?", re.IGNORECASE | re.DOTALL),
    re.compile(
        r"Receipt\s+No\.?\s+Completion\s+Time\s+Details\s+(?:Transaction\s+)?Status"
        r"\s+Paid\s+In\s+Withdrawn\s+Balance",
        re.IGNORECASE,
    ),
]

CHARGE_PATTERN = re.compile(r"\bCharge\b", re.IGNORECASE)


class StatementParser:
    """Parser for M-Pesa full statement text."""

    def __init__(self, include_failed: bool = False):
        """Initialize the parser.

        Args:
            include_failed: Keep rows whose status is not COMPLETED
        """
        self.include_failed = include_failed

    def parse(self, statement_text: str) -> list[ParsedTransaction]:
        """Parse statement text into transactions in document order."""
        return self.parse_content(statement_text).transactions

    def parse_content(self, statement_text: str) -> StatementParseResult:
        """Parse statement text, keeping skip counts and a summary.

        Args:
            statement_text: Raw statement text

        Returns:
            StatementParseResult
        """
        result = StatementParseResult()

        for segment in self._segment(self._preprocess_content(statement_text)):
            transaction = self._parse_segment(segment)
            if transaction is None:
                result.skipped_segments += 1
            else:
                result.transactions.append(transaction)

        if not result.transactions:
            result.warnings.append("No transactions found")

        self._post_process(result)

        logger.debug(
            f"Statement parsed: {result.transaction_count} transactions, "
            f"{result.skipped_segments} segments skipped"
        )
        return result

    def _preprocess_content(self, content: str) -> str:
        """Strip page markers, repeated headers and footers."""
        if content.startswith('\ufeff'):
            content = content[1:]

        content = content.replace('\r\n', '\n').replace('\r', '\n').replace('\f', '\n')

        for pattern in NOISE_PATTERNS:
            content = pattern.sub(" ", content)

        return content

    def _segment(self, content: str) -> list[str]:
        """Split cleaned text into one unit per receipt number."""
        segments = []
        for part in SEGMENT_BOUNDARY.split(content):
            unit = re.sub(r"\s+", " ", part).strip()
            if len(unit) >= 10:
                segments.append(unit)
        return segments

    def _parse_segment(self, segment: str) -> ParsedTransaction | None:
        """Parse one statement row; None when the row is not a usable transaction."""
        match = ROW_PATTERN.match(segment)
        if not match:
            return None

        details = match.group("details")
        if CHARGE_PATTERN.search(details):
            return None

        status = match.group("status").upper()
        if status != "COMPLETED" and not self.include_failed:
            return None

        recipient, detail_type = self._parse_details(details)

        amounts = match.group("amounts").split()
        balance = parse_amount(amounts[-1])
        amount, transaction_type = self._resolve_amount(amounts[:-1], detail_type)

        if amount is None or amount == 0:
            return None

        return ParsedTransaction(
            amount=amount,
            recipient=recipient,
            transaction_type=transaction_type,
            reference=match.group("receipt").upper(),
            balance=balance,
            timestamp=parse_timestamp(match.group("completion_time")),
            raw_message=segment,
        )

    def _parse_details(self, details: str) -> tuple[str | None, TransactionType | None]:
        """Map a Details cell to counterparty name and transaction type."""
        for rule in DETAIL_RULES:
            match = rule.pattern.match(details.strip())
            if match:
                return clean_counterparty(match.group("name")), rule.transaction_type

        return clean_counterparty(details), None

    def _resolve_amount(
        self,
        figures: list[str],
        detail_type: TransactionType | None
    ) -> tuple[Decimal | None, TransactionType | None]:
        """Pick the moving amount out of the Paid In / Withdrawn cells.

        Args:
            figures: Money cells preceding the balance (zero, one or two)
            detail_type: Type inferred from the Details cell

        Returns:
            Tuple of (amount, transaction type)
        """
        if len(figures) == 2:
            paid_in = parse_amount(figures[0]) or Decimal("0")
            withdrawn = parse_amount(figures[1]) or Decimal("0")
            if withdrawn != 0:
                return withdrawn, detail_type or TransactionType.SEND
            return paid_in, detail_type or TransactionType.RECEIVE

        if len(figures) == 1:
            amount = parse_amount(figures[0])
            if detail_type is not None:
                return amount, detail_type
            if figures[0].startswith("-"):
                return amount, TransactionType.SEND
            return amount, TransactionType.RECEIVE

        return None, detail_type

    def _post_process(self, result: StatementParseResult) -> None:
        """Calculate summary totals."""
        paid_in = sum(
            (t.amount for t in result.transactions
             if t.transaction_type in (TransactionType.RECEIVE, TransactionType.DEPOSIT)),
            Decimal("0"),
        )
        withdrawn = sum(
            (t.amount for t in result.transactions
             if t.transaction_type not in (TransactionType.RECEIVE, TransactionType.DEPOSIT)),
            Decimal("0"),
        )

        result.summary = {
            "total_transactions": result.transaction_count,
            "total_paid_in": float(paid_in),
            "total_withdrawn": float(withdrawn),
            "skipped_segments": result.skipped_segments,
        }
