"""
Parsing API Routes

Provides endpoints for turning M-Pesa SMS text and statements into transactions.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from mpesa_processor import MessageParser, ParseError, ParsedTransaction, StatementParser

from ..dependencies import get_message_parser, get_statement_parser

router = APIRouter(prefix="/parse", tags=["parsing"])


class Transaction(BaseModel):
    """Parsed transaction model."""

    amount: float
    recipient: str | None = None
    transaction_type: str | None = None  # 'send', 'receive', 'buy', 'withdraw', 'deposit'
    reference: str | None = None
    balance: float | None = None
    timestamp: datetime | None = None
    raw_message: str = ""


class ParseFailure(BaseModel):
    """A message that could not be parsed."""

    index: int
    message: str
    error: str


class MessageRequest(BaseModel):
    """Single SMS message."""

    message: str = Field(..., min_length=1)


class MessagesRequest(BaseModel):
    """Several SMS messages, or one block of pasted text."""

    messages: list[str] = Field(default_factory=list)
    text: str | None = None


class BatchParseResponse(BaseModel):
    """Batch parsing response."""

    transactions: list[Transaction]
    failures: list[ParseFailure]
    success_count: int
    failure_count: int


class StatementRequest(BaseModel):
    """Full statement text."""

    text: str
    include_failed: bool = False


class StatementSummary(BaseModel):
    """Statement totals."""

    total_transactions: int
    total_paid_in: float
    total_withdrawn: float
    skipped_segments: int


class StatementResponse(BaseModel):
    """Statement parsing response."""

    transactions: list[Transaction]
    warnings: list[str]
    summary: StatementSummary


def to_transaction(parsed: ParsedTransaction) -> Transaction:
    return Transaction(**parsed.to_dict())


@router.post("/message", response_model=Transaction)
async def parse_message(
    request: MessageRequest,
    parser: MessageParser = Depends(get_message_parser),
) -> Transaction:
    """Parse one M-Pesa SMS message.

    Args:
        request: Message text
        parser: Shared message parser

    Returns:
        Parsed transaction; 422 when no amount can be found
    """
    try:
        parsed = parser.parse(request.message)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return to_transaction(parsed)


@router.post("/messages", response_model=BatchParseResponse)
async def parse_messages(
    request: MessagesRequest,
    parser: MessageParser = Depends(get_message_parser),
) -> BatchParseResponse:
    """Parse many messages; failures are reported per message."""
    if request.text:
        result = parser.parse_text(request.text)
    else:
        result = parser.parse_batch(request.messages)

    return BatchParseResponse(
        transactions=[to_transaction(t) for t in result.transactions],
        failures=[
            ParseFailure(index=index, message=message, error=error)
            for index, message, error in result.failures
        ],
        success_count=result.success_count,
        failure_count=result.failure_count,
    )


@router.post("/statement", response_model=StatementResponse)
async def parse_statement(
    request: StatementRequest,
    parser: StatementParser = Depends(get_statement_parser),
) -> StatementResponse:
    """Parse an M-Pesa statement export.

    Args:
        request: Statement text and whether failed rows are kept
        parser: Shared statement parser

    Returns:
        Transactions, warnings and totals
    """
    if request.include_failed:
        parser = StatementParser(include_failed=True)

    result = parser.parse_content(request.text)

    return StatementResponse(
        transactions=[to_transaction(t) for t in result.transactions],
        warnings=result.warnings,
        summary=StatementSummary(**result.summary),
    )
