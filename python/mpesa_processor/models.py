"""
Stored Records Module

Read-only views of records owned by the persistence layer.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .parsers.base import TransactionType

UNCATEGORIZED = "Uncategorized"


class Frequency(Enum):
    """Payment frequency of a recurring obligation."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class StoredTransaction:
    """A previously saved transaction."""

    id: str
    amount: Decimal
    recipient: str | None = None
    timestamp: datetime | None = None
    category: str = UNCATEGORIZED
    mpesa_reference: str | None = None
    transaction_type: TransactionType | None = None
    raw_message: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": float(self.amount),
            "recipient": self.recipient,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "category": self.category,
            "mpesa_reference": self.mpesa_reference,
            "transaction_type": self.transaction_type.value if self.transaction_type else None,
        }


@dataclass(frozen=True)
class RecurringObligation:
    """An expected repeating payment (subscription, rent, loan installment)."""

    id: str
    recipient: str
    amount: Decimal
    category: str | None = None
    last_paid_date: datetime | None = None
    frequency: Frequency | None = None
    name: str = ""
    paybill_number: str | None = None
    till_number: str | None = None
    account_number: str | None = None
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name or self.recipient,
            "recipient": self.recipient,
            "amount": float(self.amount),
            "category": self.category,
            "last_paid_date": self.last_paid_date.isoformat() if self.last_paid_date else None,
            "frequency": self.frequency.value if self.frequency else None,
            "is_active": self.is_active,
        }
