"""
Base Parser Module

Shared extraction grammar for M-Pesa messages and statements.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum


class ParseError(ValueError):
    """Raised when no monetary amount can be located in a message."""


class TransactionType(Enum):
    """Direction of money movement."""
    SEND = "send"
    RECEIVE = "receive"
    BUY = "buy"
    WITHDRAW = "withdraw"
    DEPOSIT = "deposit"


@dataclass(frozen=True)
class ParsedTransaction:
    """Represents a transaction extracted from an M-Pesa message or statement row."""

    amount: Decimal
    recipient: str | None = None
    transaction_type: TransactionType | None = None
    reference: str | None = None
    balance: Decimal | None = None
    timestamp: datetime | None = None
    raw_message: str = ""

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Amount must be non-negative: {self.amount}")

    def to_dict(self) -> dict:
        return {
            "amount": float(self.amount),
            "recipient": self.recipient,
            "transaction_type": self.transaction_type.value if self.transaction_type else None,
            "reference": self.reference,
            "balance": float(self.balance) if self.balance is not None else None,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "raw_message": self.raw_message,
        }


@dataclass(frozen=True)
class PaymentDetails:
    """Paybill / till / account numbers mentioned in a message."""

    paybill: str | None = None
    till: str | None = None
    account: str | None = None


@dataclass
class BatchParseResult:
    """Result of parsing many messages independently."""

    transactions: list[ParsedTransaction] = field(default_factory=list)
    failures: list[tuple[int, str, str]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.transactions)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


# Grammar fragments shared by message templates and statement rows
CURRENCY = r"(?:Kshs|Ksh|KES)\.?\s*"
AMOUNT = r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
COUNTERPARTY = (
    r"(?P<counterparty>.+?)"
    r"(?=\.?\s+on\s+\d{1,2}/\d{1,2}/\d{2,4}"
    r"|\s+for\s+account\b"
    r"|\.?\s+New\s+M-PESA"
    # Initials and honorifics ("Mr. J. Kamau") do not end the name
    r"|(?<!\b[A-Za-z])(?<!\bMr)(?<!\bMs)(?<!\bDr)(?<!\bMrs)\.\s"
    r"|\.?\s*$)"
)

CURRENCY_AMOUNT_PATTERN = re.compile(CURRENCY + AMOUNT, re.IGNORECASE)

DATE_TIME_PATTERN = re.compile(
    r"\bon\s+(?P<date>\d{1,2}/\d{1,2}/\d{2,4})"
    r"(?:\s+at\s+(?P<time>\d{1,2}:\d{2}\s*[AP]M))?",
    re.IGNORECASE,
)

BALANCE_PATTERN = re.compile(
    r"balance\s+(?:is|was)\s*:?\s*" + CURRENCY + AMOUNT,
    re.IGNORECASE,
)

# Reference codes are 10 uppercase characters mixing letters and digits
REFERENCE_PATTERNS = [
    re.compile(r"^\s*(?P<ref>[A-Z0-9]{10})\b"),
    re.compile(r"\b(?:Ref(?:erence)?|Transaction\s+ID)[.:\s]+(?P<ref>[A-Z0-9]{6,12})\b", re.IGNORECASE),
]

PAYBILL_PATTERN = re.compile(r"\bpay\s*bill(?:\s+(?:no|number))?[:.#\s]+(\d+)", re.IGNORECASE)
TILL_PATTERN = re.compile(r"\btill(?:\s+(?:no|number))?[:.#\s]+(\d+)", re.IGNORECASE)
ACCOUNT_PATTERN = re.compile(r"\b(?:account|acc)(?:\s+(?:no|number))?[:.#\s]+([a-z0-9]+)", re.IGNORECASE)

# Statement completion times and SMS date/time formats
DATE_FORMATS = [
    "%d/%m/%y %I:%M %p",
    "%d/%m/%Y %I:%M %p",
    "%d/%m/%y",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
]


def parse_amount(amount_str: str | None) -> Decimal | None:
    """Parse an amount string to Decimal.

    Args:
        amount_str: Amount string (may include currency prefix, commas)

    Returns:
        Parsed non-negative Decimal, or None if the string holds no number
    """
    if not amount_str or not amount_str.strip():
        return None

    cleaned = re.sub(r"^\s*" + CURRENCY, "", amount_str.strip(), flags=re.IGNORECASE)
    cleaned = cleaned.replace(",", "").replace(" ", "")

    try:
        return abs(Decimal(cleaned))
    except InvalidOperation:
        return None


def find_amount(text: str) -> Decimal | None:
    """Locate the first currency-prefixed amount in free text."""
    match = CURRENCY_AMOUNT_PATTERN.search(text)
    if not match:
        return None
    return parse_amount(match.group("amount"))


def parse_timestamp(date_str: str, time_str: str | None = None) -> datetime | None:
    """Parse a day/month/year date and optional 12-hour time.

    Returns:
        Naive local datetime, or None when no format fits
    """
    value = date_str.strip()
    if time_str:
        # "10:30AM" -> "10:30 AM"
        time_value = re.sub(r"\s*([AaPp][Mm])$", r" \1", time_str.strip()).upper()
        value = f"{value} {time_value}"

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    return None


def to_naive_local(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def extract_timestamp(text: str) -> datetime | None:
    """Find an "on DD/MM/YY at HH:MM AM" phrase and parse it."""
    match = DATE_TIME_PATTERN.search(text)
    if not match:
        return None
    return parse_timestamp(match.group("date"), match.group("time"))


def extract_balance(text: str) -> Decimal | None:
    """Find the post-transaction balance figure."""
    match = BALANCE_PATTERN.search(text)
    if not match:
        return None
    return parse_amount(match.group("amount"))


def is_reference_code(token: str) -> bool:
    """Check a token looks like an M-Pesa transaction code."""
    return bool(re.search(r"[A-Z]", token.upper())) and bool(re.search(r"\d", token))


def extract_reference(text: str) -> str | None:
    """Find the transaction reference code near the start or after a Ref label."""
    for pattern in REFERENCE_PATTERNS:
        match = pattern.search(text)
        if match and is_reference_code(match.group("ref")):
            return match.group("ref").upper()
    return None


def clean_counterparty(name: str | None) -> str | None:
    """Trim, collapse whitespace and drop trailing punctuation."""
    if not name:
        return None
    cleaned = re.sub(r"\s+", " ", name).strip(" .,;:-")
    return cleaned or None


def extract_payment_details(text: str | None) -> PaymentDetails:
    """Extract paybill, till and account numbers from a raw message."""
    if not text:
        return PaymentDetails()

    paybill = PAYBILL_PATTERN.search(text)
    till = TILL_PATTERN.search(text)
    account = ACCOUNT_PATTERN.search(text)

    return PaymentDetails(
        paybill=paybill.group(1) if paybill else None,
        till=till.group(1) if till else None,
        account=account.group(1).lower() if account else None,
    )
