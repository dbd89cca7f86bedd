"""
Shared processor instances for route handlers.

Instances are built once in the application lifespan and stored on
``app.state``. They only hold configuration, so sharing them is safe.
"""

import os
from pathlib import Path

from fastapi import HTTPException, Request

from mpesa_processor import (
    DuplicateDetector,
    MessageParser,
    RecipientCategoryResolver,
    RecurringLinker,
    RecurringMatcher,
    StatementParser,
    TransactionCategorizer,
)


def config_dir_from_env() -> Path | None:
    """Config directory override from MPESA_CONFIG_DIR, if set."""
    value = os.getenv("MPESA_CONFIG_DIR")
    return Path(value) if value else None


def init_processors(state, config_dir: Path | None = None) -> None:
    """Build every processor and attach it to the application state."""
    state.message_parser = MessageParser()
    state.statement_parser = StatementParser()
    state.duplicate_detector = DuplicateDetector(config_dir=config_dir)
    state.recurring_matcher = RecurringMatcher(config_dir=config_dir)
    state.recurring_linker = RecurringLinker(config_dir=config_dir)
    state.category_resolver = RecipientCategoryResolver()
    state.categorizer = TransactionCategorizer(config_dir=config_dir)


def _get(request: Request, name: str):
    processor = getattr(request.app.state, name, None)
    if processor is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return processor


def get_message_parser(request: Request) -> MessageParser:
    return _get(request, "message_parser")


def get_statement_parser(request: Request) -> StatementParser:
    return _get(request, "statement_parser")


def get_duplicate_detector(request: Request) -> DuplicateDetector:
    return _get(request, "duplicate_detector")


def get_recurring_matcher(request: Request) -> RecurringMatcher:
    return _get(request, "recurring_matcher")


def get_recurring_linker(request: Request) -> RecurringLinker:
    return _get(request, "recurring_linker")


def get_category_resolver(request: Request) -> RecipientCategoryResolver:
    return _get(request, "category_resolver")


def get_categorizer(request: Request) -> TransactionCategorizer:
    return _get(request, "categorizer")
