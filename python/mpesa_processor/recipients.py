"""
Recipient Matching Module

Recipient name normalization and category inference from history.
"""

import logging
import re

from .models import UNCATEGORIZED, StoredTransaction

logger = logging.getLogger(__name__)

PHONE_NUMBER_PATTERN = re.compile(r"\b0?\d{9,10}\b")

# Below this length substring matches are too loose ("Jo" in "John")
MIN_PARTIAL_MATCH_LENGTH = 3


def normalize_recipient_name(name: str | None) -> str:
    """Normalize a recipient name for comparison.

    Trims, lowercases, collapses whitespace and removes embedded phone numbers.
    """
    if not name:
        return ""

    normalized = re.sub(r"\s+", " ", name.strip().lower())
    normalized = PHONE_NUMBER_PATTERN.sub("", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def is_partial_match(norm1: str, norm2: str) -> bool:
    """Substring containment in either direction, guarded by minimum length."""
    if len(norm1) < MIN_PARTIAL_MATCH_LENGTH or len(norm2) < MIN_PARTIAL_MATCH_LENGTH:
        return False
    return norm1 in norm2 or norm2 in norm1


def recipients_match(recipient1: str | None, recipient2: str | None, strict: bool = False) -> bool:
    """Check if two recipients match (exact, or substring unless strict).

    Args:
        recipient1: First recipient name
        recipient2: Second recipient name
        strict: Only accept exact matches after normalization

    Returns:
        True if the names refer to the same recipient
    """
    norm1 = normalize_recipient_name(recipient1)
    norm2 = normalize_recipient_name(recipient2)

    if not norm1 or not norm2:
        return False

    if norm1 == norm2:
        return True

    if strict:
        return False

    return is_partial_match(norm1, norm2)


class RecipientCategoryResolver:
    """Infers a recipient's category by majority vote over past transactions."""

    def resolve(self, recipient_name: str, history: list[StoredTransaction]) -> str | None:
        """Find the most common category for a recipient.

        Args:
            recipient_name: Recipient to look up
            history: Previously stored transactions

        Returns:
            Category name, or None if the recipient has no history
        """
        target = (recipient_name or "").strip().lower()
        if not target or not history:
            return None

        counts: dict[str, int] = {}
        for txn in history:
            if not txn.recipient or txn.recipient.strip().lower() != target:
                continue
            category = txn.category or UNCATEGORIZED
            counts[category] = counts.get(category, 0) + 1

        if not counts:
            return None

        best_category = None
        best_count = 0
        for category, count in counts.items():
            if category == UNCATEGORIZED and len(counts) > 1:
                continue
            if count > best_count:
                best_category = category
                best_count = count

        logger.debug(f"Resolved category for '{recipient_name}': {best_category}")
        return best_category

    def resolve_batch(
        self,
        recipient_names: list[str],
        history: list[StoredTransaction]
    ) -> dict[str, str | None]:
        """Resolve categories for several recipients against the same history."""
        return {
            name: self.resolve(name, history)
            for name in recipient_names
        }
