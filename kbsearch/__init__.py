"""
KB Search - knowledge base article search and ticket pattern matching.

Usage:
    from kbsearch import KnowledgeBaseService, InMemoryArticleRepository, InMemoryPatternRepository

    service = KnowledgeBaseService(InMemoryArticleRepository(articles), InMemoryPatternRepository(patterns))
    response = service.search({"query": "password reset", "limit": 5})
    matches = service.match_ticket({"ticket_id": "T-1", "ticket_text": "VPN keeps disconnecting"})
"""

from .config import Settings
from .exceptions import (
    IndexBuildError,
    InternalError,
    KBSearchError,
    PatternCompileError,
    ValidationError,
)
from .models import Article, ArticleStatus, Category, PatternDefinition, TriggerKind
from .repositories import (
    ArticleRepository,
    InMemoryArticleRepository,
    InMemoryPatternRepository,
    PatternRepository,
    YamlArticleRepository,
    YamlPatternRepository,
)
from .service import KnowledgeBaseService

__all__ = [
    "Settings",
    "IndexBuildError",
    "InternalError",
    "KBSearchError",
    "PatternCompileError",
    "ValidationError",
    "Article",
    "ArticleStatus",
    "Category",
    "PatternDefinition",
    "TriggerKind",
    "ArticleRepository",
    "InMemoryArticleRepository",
    "InMemoryPatternRepository",
    "PatternRepository",
    "YamlArticleRepository",
    "YamlPatternRepository",
    "KnowledgeBaseService",
]
