"""
M-Pesa Message Parser

Parses single M-Pesa confirmation SMS messages into transactions.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .base import (
    AMOUNT,
    COUNTERPARTY,
    CURRENCY,
    BatchParseResult,
    ParseError,
    ParsedTransaction,
    TransactionType,
    clean_counterparty,
    extract_balance,
    extract_reference,
    extract_timestamp,
    find_amount,
    parse_amount,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageTemplate:
    """A message phrasing: the pattern captures amount and counterparty."""

    name: str
    pattern: re.Pattern
    transaction_type: TransactionType

    def match(self, message: str) -> re.Match | None:
        return self.pattern.search(message)


def _template(name: str, phrase: str, transaction_type: TransactionType) -> MessageTemplate:
    pattern = phrase.format(CUR=CURRENCY, AMT=AMOUNT, NAME=COUNTERPARTY)
    return MessageTemplate(name, re.compile(pattern, re.IGNORECASE), transaction_type)


# Ordered most specific first; the first matching template wins
MESSAGE_TEMPLATES = [
    _template("buy_goods", r"You\s+bought\s+goods\s+worth\s+{CUR}{AMT}\s+from\s+{NAME}", TransactionType.BUY),
    _template("till_payment", r"{CUR}{AMT}\s+paid\s+to\s+{NAME}", TransactionType.BUY),
    _template("withdrew", r"You\s+withdrew\s+{CUR}{AMT}\s+from\s+(?:\d+\s*-\s*)?{NAME}", TransactionType.WITHDRAW),
    _template("withdraw", r"Withdraw\s+{CUR}{AMT}\s+from\s+(?:\d+\s*-\s*)?{NAME}", TransactionType.WITHDRAW),
    _template("deposited", r"You\s+deposited\s+{CUR}{AMT}\s+at\s+{NAME}", TransactionType.DEPOSIT),
    _template("agent_deposit", r"Give\s+{CUR}{AMT}\s+cash\s+to\s+{NAME}", TransactionType.DEPOSIT),
    _template("received", r"You\s+(?:have\s+)?received\s+{CUR}{AMT}\s+from\s+{NAME}", TransactionType.RECEIVE),
    _template("you_sent", r"You\s+sent\s+{CUR}{AMT}\s+to\s+{NAME}", TransactionType.SEND),
    _template("sent", r"{CUR}{AMT}\s+sent\s+to\s+{NAME}", TransactionType.SEND),
]

# A new message starts where a line opens with a transaction code
MESSAGE_BOUNDARY = re.compile(r"\n\s*\n|\n(?=\s*[A-Z0-9]{10}\s+Confirmed)")


class MessageParser:
    """Parser for M-Pesa SMS confirmation messages."""

    def __init__(self, templates: list[MessageTemplate] | None = None):
        """Initialize the parser.

        Args:
            templates: Ordered templates to try, defaults to MESSAGE_TEMPLATES
        """
        self.templates = list(templates) if templates is not None else list(MESSAGE_TEMPLATES)

    def parse(self, message: str) -> ParsedTransaction:
        """Parse a single message.

        Args:
            message: Raw SMS text

        Returns:
            ParsedTransaction

        Raises:
            ParseError: If no amount can be located in the message
        """
        text = message.strip()

        for template in self.templates:
            match = template.match(text)
            if not match:
                continue

            amount = parse_amount(match.group("amount"))
            if amount is None:
                continue

            return ParsedTransaction(
                amount=amount,
                recipient=clean_counterparty(match.group("counterparty")),
                transaction_type=template.transaction_type,
                reference=extract_reference(text),
                balance=extract_balance(text),
                timestamp=extract_timestamp(text),
                raw_message=message,
            )

        # Unrecognized phrasing: keep the amount only
        amount = find_amount(text)
        if amount is None:
            raise ParseError("Could not locate an amount in M-Pesa message")

        return ParsedTransaction(amount=amount, raw_message=message)

    def parse_batch(self, messages: Iterable[str]) -> BatchParseResult:
        """Parse messages independently, collecting failures instead of raising.

        Args:
            messages: Raw SMS texts

        Returns:
            BatchParseResult with transactions in input order
        """
        result = BatchParseResult()

        for index, message in enumerate(messages):
            try:
                result.transactions.append(self.parse(message))
            except ParseError as e:
                result.failures.append((index, message, str(e)))

        logger.debug(
            f"Parsed {result.success_count} messages, {result.failure_count} failed"
        )
        return result

    def split_messages(self, text: str) -> list[str]:
        """Split a pasted block of several messages into individual messages."""
        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        parts = MESSAGE_BOUNDARY.split(normalized)
        return [part.strip() for part in parts if part and part.strip()]

    def parse_text(self, text: str) -> BatchParseResult:
        """Split a pasted block and parse each message."""
        return self.parse_batch(self.split_messages(text))
