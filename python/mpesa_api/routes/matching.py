"""
Matching API Routes

Provides endpoints for duplicate detection, recurring payment matching,
recipient category lookup and merchant categorization.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mpesa_processor import (
    DuplicateDetector,
    Frequency,
    ParsedTransaction,
    RecipientCategoryResolver,
    RecurringLinker,
    RecurringMatcher,
    RecurringObligation,
    StoredTransaction,
    TransactionCategorizer,
    TransactionType,
    confidence_message,
    recommended_action,
)
from mpesa_processor.models import UNCATEGORIZED

from ..dependencies import (
    get_categorizer,
    get_category_resolver,
    get_duplicate_detector,
    get_recurring_linker,
    get_recurring_matcher,
)

router = APIRouter(tags=["matching"])


class TransactionInput(BaseModel):
    """A parsed transaction sent back by the client."""

    amount: float = Field(..., ge=0)
    recipient: str | None = None
    transaction_type: TransactionType | None = None
    reference: str | None = None
    balance: float | None = None
    timestamp: datetime | None = None
    raw_message: str = ""

    def to_parsed(self) -> ParsedTransaction:
        return ParsedTransaction(
            amount=to_decimal(self.amount),
            recipient=self.recipient,
            transaction_type=self.transaction_type,
            reference=self.reference,
            balance=to_decimal(self.balance) if self.balance is not None else None,
            timestamp=self.timestamp,
            raw_message=self.raw_message,
        )


class StoredTransactionInput(BaseModel):
    """A previously saved transaction."""

    id: str
    amount: float
    recipient: str | None = None
    timestamp: datetime | None = None
    category: str = UNCATEGORIZED
    mpesa_reference: str | None = None
    transaction_type: TransactionType | None = None
    raw_message: str = ""

    def to_stored(self) -> StoredTransaction:
        return StoredTransaction(
            id=self.id,
            amount=to_decimal(self.amount),
            recipient=self.recipient,
            timestamp=self.timestamp,
            category=self.category,
            mpesa_reference=self.mpesa_reference,
            transaction_type=self.transaction_type,
            raw_message=self.raw_message,
        )


class ObligationInput(BaseModel):
    """A recurring obligation."""

    id: str
    recipient: str
    amount: float
    category: str | None = None
    last_paid_date: datetime | None = None
    frequency: Frequency | None = None
    name: str = ""
    paybill_number: str | None = None
    till_number: str | None = None
    account_number: str | None = None
    is_active: bool = True

    def to_obligation(self) -> RecurringObligation:
        return RecurringObligation(
            id=self.id,
            recipient=self.recipient,
            amount=to_decimal(self.amount),
            category=self.category,
            last_paid_date=self.last_paid_date,
            frequency=self.frequency,
            name=self.name,
            paybill_number=self.paybill_number,
            till_number=self.till_number,
            account_number=self.account_number,
            is_active=self.is_active,
        )


class DuplicateRequest(BaseModel):
    """Duplicate check request."""

    transaction: TransactionInput
    existing: list[StoredTransactionInput] = Field(default_factory=list)


class RecurringRequest(BaseModel):
    """Recurring match request."""

    transaction: TransactionInput
    recipient_name: str | None = None
    suggested_category: str | None = None
    obligations: list[ObligationInput] = Field(default_factory=list)
    now: datetime | None = None


class LinkRequest(BaseModel):
    """Recurring link request."""

    transaction: TransactionInput
    obligations: list[ObligationInput] = Field(default_factory=list)


class CategoryRequest(BaseModel):
    """Recipient category lookup request."""

    recipient: str
    history: list[StoredTransactionInput] = Field(default_factory=list)


class CategorizeRequest(BaseModel):
    """Merchant categorization request."""

    merchant: str
    description: str | None = None


def to_decimal(value: float) -> Decimal:
    # Through str so 0.1 stays 0.1
    return Decimal(str(value))


@router.post("/match/duplicates")
async def match_duplicates(
    request: DuplicateRequest,
    detector: DuplicateDetector = Depends(get_duplicate_detector),
) -> dict[str, Any]:
    """Check a parsed transaction against stored transactions.

    Args:
        request: Parsed transaction and stored candidates
        detector: Shared duplicate detector

    Returns:
        Detection result with a message and recommended action
    """
    result = detector.detect(
        request.transaction.to_parsed(),
        [t.to_stored() for t in request.existing],
    )

    return {
        **result.to_dict(),
        "message": confidence_message(result.highest_confidence),
        "recommended_action": recommended_action(result.highest_confidence),
    }


@router.post("/match/recurring")
async def match_recurring(
    request: RecurringRequest,
    matcher: RecurringMatcher = Depends(get_recurring_matcher),
) -> dict[str, Any]:
    """Find the recurring obligation a transaction most likely pays.

    Args:
        request: Transaction, resolved recipient, suggested category and obligations
        matcher: Shared recurring matcher

    Returns:
        Recurring match; zero score and low confidence when nothing fits
    """
    parsed = request.transaction.to_parsed()
    match = matcher.match(
        parsed,
        request.recipient_name or parsed.recipient or "",
        request.suggested_category,
        [o.to_obligation() for o in request.obligations],
        now=request.now,
    )
    return match.to_dict()


@router.post("/match/link")
async def link_recurring(
    request: LinkRequest,
    linker: RecurringLinker = Depends(get_recurring_linker),
) -> dict[str, Any]:
    """Link a transaction to a recurring obligation by paybill, till or account."""
    link = linker.link_parsed(
        request.transaction.to_parsed(),
        [o.to_obligation() for o in request.obligations],
    )

    return {
        "linked": link is not None,
        "link": link.to_dict() if link else None,
        "confidence": linker.confidence_for(link.match_score) if link else "none",
        "recommended_action": linker.recommended_action(link),
    }


@router.post("/match/category")
async def match_category(
    request: CategoryRequest,
    resolver: RecipientCategoryResolver = Depends(get_category_resolver),
) -> dict[str, Any]:
    """Most common category previously used for a recipient."""
    category = resolver.resolve(request.recipient, [t.to_stored() for t in request.history])
    return {"recipient": request.recipient, "category": category}


@router.post("/categorize")
async def categorize(
    request: CategorizeRequest,
    categorizer: TransactionCategorizer = Depends(get_categorizer),
) -> dict[str, Any]:
    """Categorize a merchant or recipient string by keyword rules."""
    return categorizer.categorize(request.merchant, request.description).to_dict()
