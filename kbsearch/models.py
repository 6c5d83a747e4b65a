"""Core domain models for the KB search engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class Category(str, Enum):
    """Closed set of KB article categories."""

    GETTING_STARTED = "GETTING_STARTED"
    ACCOUNT_MANAGEMENT = "ACCOUNT_MANAGEMENT"
    BILLING_PAYMENTS = "BILLING_PAYMENTS"
    TECHNICAL_SUPPORT = "TECHNICAL_SUPPORT"
    PRODUCT_FEATURES = "PRODUCT_FEATURES"
    TROUBLESHOOTING = "TROUBLESHOOTING"
    POLICIES = "POLICIES"
    INTEGRATIONS = "INTEGRATIONS"
    SECURITY = "SECURITY"
    FAQ = "FAQ"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    Category.GETTING_STARTED: "Getting Started",
    Category.ACCOUNT_MANAGEMENT: "Account Management",
    Category.BILLING_PAYMENTS: "Billing & Payments",
    Category.TECHNICAL_SUPPORT: "Technical Support",
    Category.PRODUCT_FEATURES: "Product Features",
    Category.TROUBLESHOOTING: "Troubleshooting",
    Category.POLICIES: "Policies",
    Category.INTEGRATIONS: "Integrations",
    Category.SECURITY: "Security",
    Category.FAQ: "FAQ",
    Category.OTHER: "Other",
}


class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class TriggerKind(str, Enum):
    """How a pattern's trigger is evaluated against ticket text."""

    KEYWORDS = "keywords"  # graded: share of keywords found
    REGEX = "regex"        # binary
    PHRASE = "phrase"      # binary


class SuggestedAction(str, Enum):
    SEND_ARTICLE = "SEND_ARTICLE"
    USE_AS_REFERENCE = "USE_AS_REFERENCE"
    ESCALATE = "ESCALATE"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Article:
    """
    A knowledge base article.

    Immutable: an index snapshot keeps references to the articles it was
    built from, so they must not change underneath it.
    """

    id: str
    title: str
    body: str
    category: Category
    tags: FrozenSet[str] = frozenset()
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    status: ArticleStatus = ArticleStatus.PUBLISHED

    def __post_init__(self):
        if not self.id:
            raise ValueError("Article id must not be empty")
        # Accept any iterable of tags / raw enum values from loaders
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "category", Category(self.category))
        object.__setattr__(self, "status", ArticleStatus(self.status))
        # Naive timestamps are UTC so updated_at stays comparable across loaders
        for name in ("created_at", "updated_at"):
            value = getattr(self, name)
            if value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))

    @property
    def is_published(self) -> bool:
        return self.status is ArticleStatus.PUBLISHED


@dataclass(frozen=True)
class PatternDefinition:
    """
    Raw pattern configuration as supplied by a pattern repository.

    `keywords` is used by KEYWORDS triggers, `expression` by REGEX and
    PHRASE triggers. Compiled into a Pattern by kbsearch.patterns.
    """

    id: str
    kind: TriggerKind
    category: Category
    keywords: Tuple[str, ...] = ()
    expression: str = ""
    suggested_article_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SearchResult:
    """Single ranked article for a query."""
    article: Article
    score: float    # >= 0, higher = more relevant
    snippet: str    # excerpt around the best match
    matched_terms: Tuple[str, ...] = ()  # query terms found in the article, sorted
    matched_field: str = "body"          # field the snippet was taken from


@dataclass(frozen=True)
class MatchedPattern:
    """Pattern that matched a ticket, with its confidence."""
    pattern_id: str
    confidence: float                  # 0-1
    matched_keywords: Tuple[str, ...]  # trigger keywords found in the ticket
    category: Category
    suggested_article_ids: Tuple[str, ...] = ()
    suggested_action: SuggestedAction = SuggestedAction.USE_AS_REFERENCE


@dataclass(frozen=True)
class TicketPatternMatch:
    """All pattern matches for one ticket, best first."""
    ticket_id: str
    matches: Tuple[MatchedPattern, ...]
    excluded_pattern_ids: Tuple[str, ...] = ()
    duplicate_pattern_ids: Tuple[str, ...] = ()

    @property
    def top_article_id(self) -> Optional[str]:
        for match in self.matches:
            if match.suggested_article_ids:
                return match.suggested_article_ids[0]
        return None
