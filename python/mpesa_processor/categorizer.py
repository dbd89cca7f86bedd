"""
Transaction Categorizer Module

Keyword-based categorization of M-Pesa counterparties and merchant strings.
Rules are loaded from config/category_rules.yaml.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .config import CATEGORY_RULES_FILE, load_rules, resolve_config_dir
from .parsers.base import ParsedTransaction

logger = logging.getLogger(__name__)

PAYBILL_OR_TILL_PATTERN = re.compile(r"(?:paybill|paybile|billto|till(?:no)?)[:#-]?(\d{3,6})", re.IGNORECASE)


@dataclass(frozen=True)
class CategoryRule:
    """A category and the patterns that point to it."""

    id: str
    name: str
    keywords: tuple[str, ...] = ()
    regexes: tuple[re.Pattern, ...] = ()
    paybill_boost: bool = False


@dataclass
class CategorizationResult:
    """Result of categorizing one merchant string."""

    category: str | None
    score: float
    confidence: float
    normalized_merchant: str
    matched_pattern: str | None = None
    tokens_matched: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "score": self.score,
            "confidence": self.confidence,
            "matched_pattern": self.matched_pattern,
            "normalized_merchant": self.normalized_merchant,
            "tokens_matched": list(self.tokens_matched),
        }


def normalize_merchant(text: str) -> str:
    """Lowercase, drop odd punctuation (keeping @ . -) and collapse spaces."""
    if not text:
        return ""
    cleaned = re.sub(r"[^\w\s@.-]", " ", text.lower())
    return re.sub(r"\s+", " ", cleaned).strip()


def tokenize(text: str) -> list[str]:
    """Meaningful words: at least two characters, not purely numeric."""
    return [
        token for token in normalize_merchant(text).split(" ")
        if len(token) >= 2 and not token.isdigit()
    ]


class TransactionCategorizer:
    """Scores merchant strings against keyword rules."""

    # Default weights
    SCORES = {
        "regex": 12,
        "substring": 8,
        "token": 3,
        "canonical": 15,
        "paybill_boost": 6,
        "confidence_divisor": 22,
    }

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize the categorizer.

        Args:
            config_dir: Path to configuration directory
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.rules: list[CategoryRule] = []
        self.canonical_merchants: dict[str, str] = {}
        self.scores = dict(self.SCORES)
        self._load_rules()

    def _load_rules(self) -> None:
        """Load category rules from config file."""
        if not (self.config_dir / CATEGORY_RULES_FILE).exists():
            logger.warning(f"Category rules file not found: {self.config_dir / CATEGORY_RULES_FILE}")
            return

        data = load_rules(self.config_dir, CATEGORY_RULES_FILE)

        self.scores.update(data.get("scores") or {})
        self.canonical_merchants = {
            str(key): str(value)
            for key, value in (data.get("canonical_merchants") or {}).items()
        }

        for entry in data.get("categories") or []:
            keywords = []
            regexes = []
            for pattern in entry.get("patterns") or []:
                if isinstance(pattern, dict) and "regex" in pattern:
                    regexes.append(re.compile(pattern["regex"], re.IGNORECASE))
                else:
                    keywords.append(str(pattern).lower())

            self.rules.append(CategoryRule(
                id=entry["id"],
                name=entry.get("name", entry["id"]),
                keywords=tuple(keywords),
                regexes=tuple(regexes),
                paybill_boost=bool(entry.get("paybill_boost", False)),
            ))

        logger.info(
            f"Loaded {len(self.rules)} category rules, "
            f"{len(self.canonical_merchants)} canonical merchants"
        )

    def categorize(self, merchant: str, description: str | None = None) -> CategorizationResult:
        """Categorize a merchant string.

        Args:
            merchant: Merchant or recipient name
            description: Optional extra description text

        Returns:
            CategorizationResult; category is None when nothing scores
        """
        merged = " ".join([merchant or "", description or ""])
        normalized = normalize_merchant(merged)
        tokens = tokenize(normalized)
        is_paybill = bool(PAYBILL_OR_TILL_PATTERN.search(re.sub(r"\s+", "", merged)))

        best_category = None
        best_score = 0.0
        best_pattern = None
        best_tokens: list[str] = []

        canonical = self._canonical_lookup(normalized)
        if canonical:
            best_score = self.scores["canonical"] / 2
            best_tokens = [canonical]

        for rule in self.rules:
            score, matched_pattern, tokens_matched = self._score_rule(rule, normalized, tokens)

            if is_paybill and rule.paybill_boost:
                score += self.scores["paybill_boost"]

            if score > best_score:
                best_category = rule.name
                best_score = score
                best_pattern = matched_pattern
                best_tokens = tokens_matched

        return CategorizationResult(
            category=best_category,
            score=best_score,
            confidence=min(1.0, best_score / self.scores["confidence_divisor"]),
            normalized_merchant=normalized,
            matched_pattern=best_pattern,
            tokens_matched=best_tokens,
        )

    def categorize_transaction(self, transaction: ParsedTransaction) -> CategorizationResult:
        """Categorize a parsed transaction by its recipient."""
        return self.categorize(transaction.recipient or "", transaction.raw_message)

    def categorize_batch(self, merchants: list[str]) -> list[CategorizationResult]:
        return [self.categorize(merchant) for merchant in merchants]

    def _score_rule(
        self,
        rule: CategoryRule,
        normalized: str,
        tokens: list[str]
    ) -> tuple[float, str | None, list[str]]:
        """Score one category.

        Returns:
            Tuple of (score, first matched pattern, matched tokens)
        """
        score = 0.0
        matched_pattern = None
        tokens_matched = []

        for regex in rule.regexes:
            if regex.search(normalized):
                score += self.scores["regex"]
                matched_pattern = matched_pattern or regex.pattern

        for keyword in rule.keywords:
            keyword_score = 0
            if keyword in normalized:
                keyword_score += self.scores["substring"]
                tokens_matched.append(keyword)

            for token in tokens:
                if keyword in token or token in keyword:
                    keyword_score += self.scores["token"]
                    tokens_matched.append(token)

            if keyword_score:
                score += keyword_score
                matched_pattern = matched_pattern or keyword

        return score, matched_pattern, tokens_matched

    def _canonical_lookup(self, normalized: str) -> str | None:
        for key in self.canonical_merchants:
            if key.replace("*", "").lower() in normalized:
                return key
        return None
