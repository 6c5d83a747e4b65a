"""Request/response models exchanged with the HTTP layer."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import Article, ArticleStatus, Category, MatchedPattern, SearchResult, SuggestedAction


class SearchRequest(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "query": "password reset",
                "category": "ACCOUNT_MANAGEMENT",
                "tags": ["password"],
                "limit": 10,
                "offset": 0,
            }
        },
    )

    query: str = Field(..., description="Free-text query (non-empty after trim)", min_length=1)
    category: Optional[Category] = Field(default=None, description="Only articles of this category")
    tags: Optional[List[str]] = Field(default=None, description="Only articles with at least one of these tags")
    limit: Optional[int] = Field(default=None, ge=1, description="Page size (default from KB_DEFAULT_LIMIT)")
    offset: int = Field(default=0, ge=0, description="Number of ranked results to skip")


class ArticleRef(BaseModel):
    id: str
    title: str
    category: Category
    category_label: str
    tags: List[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_article(cls, article: Article) -> "ArticleRef":
        return cls(
            id=article.id,
            title=article.title,
            category=article.category,
            category_label=article.category.label,
            tags=sorted(article.tags),
            created_at=article.created_at,
            updated_at=article.updated_at,
        )


class SearchResultItem(BaseModel):
    article: ArticleRef
    score: float
    snippet: str
    matched_terms: List[str] = Field(default_factory=list, description="Query terms found in the article")
    matched_field: str = Field(default="body", description="Field the snippet was taken from (title or body)")

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultItem":
        return cls(
            article=ArticleRef.from_article(result.article),
            score=result.score,
            snippet=result.snippet,
            matched_terms=list(result.matched_terms),
            matched_field=result.matched_field,
        )


class ArticleDetail(ArticleRef):
    body: str
    status: ArticleStatus

    @classmethod
    def from_article(cls, article: Article) -> "ArticleDetail":
        ref = ArticleRef.from_article(article)
        return cls(**ref.model_dump(), body=article.body, status=article.status)


class SearchResponse(BaseModel):
    results: List[SearchResultItem]
    total: int = Field(..., description="Size of the full ranked list before pagination")
    query: str = Field(..., description="Normalized query")
    related_searches: List[str] = Field(default_factory=list, description="Tags of the top results not in the query")


class PatternMatchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ticket_id: str = Field(..., description="Ticket identifier", min_length=1)
    ticket_text: str = Field(..., description="Ticket subject and body", min_length=1)


class MatchedPatternItem(BaseModel):
    pattern_id: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    matched_keywords: List[str]
    category: Category
    suggested_article_ids: List[str]
    suggested_action: SuggestedAction

    @classmethod
    def from_match(cls, match: MatchedPattern) -> "MatchedPatternItem":
        return cls(
            pattern_id=match.pattern_id,
            confidence=match.confidence,
            matched_keywords=list(match.matched_keywords),
            category=match.category,
            suggested_article_ids=list(match.suggested_article_ids),
            suggested_action=match.suggested_action,
        )


class PatternMatchResponse(BaseModel):
    ticket_id: str
    matches: List[MatchedPatternItem]
    excluded_pattern_ids: List[str] = Field(
        default_factory=list,
        description="Patterns skipped because their trigger failed to compile",
    )
    duplicate_pattern_ids: List[str] = Field(
        default_factory=list,
        description="Pattern ids defined more than once; only the first definition is active",
    )
    top_article_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float
    index_version: Optional[str] = None
    article_count: int
    pattern_count: int
