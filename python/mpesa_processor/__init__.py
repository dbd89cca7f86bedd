"""
M-Pesa Processor Module

Parses M-Pesa SMS messages and statements into structured transactions, then
detects duplicates, matches recurring obligations and infers categories.
"""

from .categorizer import CategorizationResult, TransactionCategorizer
from .duplicate_detector import (
    DuplicateConfidence,
    DuplicateDetectionResult,
    DuplicateDetector,
    DuplicateMatch,
    confidence_message,
    recommended_action,
)
from .models import Frequency, RecurringObligation, StoredTransaction
from .parsers import (
    BatchParseResult,
    MessageParser,
    ParseError,
    ParsedTransaction,
    StatementParser,
    StatementParseResult,
    TransactionType,
)
from .recipients import RecipientCategoryResolver, normalize_recipient_name, recipients_match
from .recurring_linker import RecurringLink, RecurringLinker
from .recurring_matcher import RecurringConfidence, RecurringMatch, RecurringMatcher

__all__ = [
    # Parsing
    "MessageParser",
    "StatementParser",
    "StatementParseResult",
    "BatchParseResult",
    "ParsedTransaction",
    "ParseError",
    "TransactionType",
    # Stored records
    "StoredTransaction",
    "RecurringObligation",
    "Frequency",
    # Duplicate Detection
    "DuplicateDetector",
    "DuplicateMatch",
    "DuplicateDetectionResult",
    "DuplicateConfidence",
    "confidence_message",
    "recommended_action",
    # Recurring
    "RecurringMatcher",
    "RecurringMatch",
    "RecurringConfidence",
    "RecurringLinker",
    "RecurringLink",
    # Recipients and categories
    "RecipientCategoryResolver",
    "normalize_recipient_name",
    "recipients_match",
    "TransactionCategorizer",
    "CategorizationResult",
]
