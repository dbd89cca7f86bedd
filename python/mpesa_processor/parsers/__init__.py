"""
Parsers for M-Pesa SMS messages and exported statements.
"""

from .base import (
    BatchParseResult,
    ParseError,
    ParsedTransaction,
    PaymentDetails,
    TransactionType,
    extract_payment_details,
)
from .message import MESSAGE_TEMPLATES, MessageParser, MessageTemplate
from .statement import StatementParser, StatementParseResult

__all__ = [
    "BatchParseResult",
    "ParseError",
    "ParsedTransaction",
    "PaymentDetails",
    "TransactionType",
    "extract_payment_details",
    "MESSAGE_TEMPLATES",
    "MessageParser",
    "MessageTemplate",
    "StatementParser",
    "StatementParseResult",
]
