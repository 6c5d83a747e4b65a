"""
Field-weighted BM25 relevance scorer for KB articles.

Scoring is done per field (title, body) against the shared index:

    idf(t)          = ln(1 + (N - df + 0.5) / (df + 0.5))
    field(t, f)     = tf × (k1 + 1) / (tf + k1 × (1 - b + b × dl_f/avgdl_f))
    score(article)  = Σ_t idf(t) × (W_title × field(t, title) + W_body × field(t, body))
                      + title_bonus   (normalized query appears as whole words in the normalized title)

Where:
    N = number of articles in the index
    df = number of articles containing the term
    tf = term frequency in the field
    dl_f / avgdl_f = field length / average field length
    W_title = title weight (default: 3.0)
    W_body = body weight (default: 1.0), W_title must be >= 2 × W_body

This IDF form never goes negative, so scores are always >= 0.

Filters (category, tags, published status) are hard filters applied before
scoring: an excluded article is never scored. Only articles with a positive
score are ranked. Ranking is a total order: score desc, updated_at desc,
article id asc.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from ..exceptions import ConfigurationError
from ..models import Article, Category, SearchResult
from .index_builder import Index
from .tokenizer import BODY, TITLE, Tokenizer, normalize_text

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


class RelevanceScorer:
    """
    Ranks indexed articles against a free-text query.
    """

    def __init__(
        self,
        title_weight: float = 3.0,
        body_weight: float = 1.0,
        title_bonus: float = 2.0,
        k1: float = 1.2,
        b: float = 0.75,
        snippet_length: int = 160,
        tokenizer: Optional[Tokenizer] = None,
    ):
        """
        Initialize scorer.

        Args:
            title_weight: Multiplier for title matches
                Must be at least 2x body_weight
                Default: 3.0

            body_weight: Multiplier for body matches
                Default: 1.0

            title_bonus: Added once when the whole normalized query appears
                as whole words in the normalized title
                Default: 2.0

            k1: Term frequency saturation parameter
                Range: 1.2 - 2.0
                Default: 1.2 (standard)

            b: Length normalization parameter
                Range: 0.0 - 1.0
                Default: 0.75 (standard)

            snippet_length: Maximum snippet size in characters (before "..." markers)
                Default: 160

            tokenizer: Must be the tokenizer the index was built with
        """
        if body_weight <= 0:
            raise ConfigurationError(f"body_weight must be positive, got {body_weight}")
        if title_weight < 2 * body_weight:
            raise ConfigurationError(
                f"title_weight ({title_weight}) must be at least 2x body_weight ({body_weight})"
            )
        if title_bonus < 0 or k1 < 0 or not 0.0 <= b <= 1.0:
            raise ConfigurationError(f"Invalid scoring constants: title_bonus={title_bonus}, k1={k1}, b={b}")
        if snippet_length <= 0:
            raise ConfigurationError(f"snippet_length must be positive, got {snippet_length}")

        self.title_weight = title_weight
        self.body_weight = body_weight
        self.title_bonus = title_bonus
        self.k1 = k1
        self.b = b
        self.snippet_length = snippet_length
        self.tokenizer = tokenizer or Tokenizer()

    def idf(self, doc_freq: int, doc_count: int) -> float:
        return math.log(1.0 + (doc_count - doc_freq + 0.5) / (doc_freq + 0.5))

    def field_score(self, tf: int, field_length: int, avg_field_length: float) -> float:
        if tf == 0:
            return 0.0
        norm = 1.0 if avg_field_length <= 0 else field_length / avg_field_length
        numerator = tf * (self.k1 + 1)
        denominator = tf + self.k1 * (1 - self.b + self.b * norm)
        return numerator / denominator

    def rank(
        self,
        query: str,
        index: Index,
        category: Optional[Category] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> List[SearchResult]:
        """
        Score and rank all matching articles.

        Pagination is NOT applied here: callers slice the full ranked list,
        so a page size can never change relative order.

        Args:
            query: Raw query text (validated non-empty by the caller)
            index: Index snapshot to search
            category: Only articles of this category (hard filter)
            tags: Only articles having at least one of these tags (hard filter,
                case-insensitive)

        Returns:
            Full ranked list of SearchResult
        """
        if index.document_count == 0:
            return []

        query_terms = list(dict.fromkeys(self.tokenizer.terms(query)))
        if not query_terms:
            logger.debug(f"Query has no searchable terms: {query!r}")
            return []

        allowed = self._allowed_ids(index, category, tags)
        doc_count = index.document_count

        title_scores: Dict[str, float] = defaultdict(float)
        body_scores: Dict[str, float] = defaultdict(float)
        matched: Dict[str, Set[str]] = defaultdict(set)

        for term in query_terms:
            postings = index.postings_for(term)
            if not postings:
                continue
            idf = self.idf(index.doc_freq[term], doc_count)
            for posting in postings:
                article_id = posting.article_id
                if article_id not in allowed:
                    continue
                matched[article_id].add(term)
                title_scores[article_id] += idf * self.title_weight * self.field_score(
                    posting.title_tf,
                    index.field_length(article_id, TITLE),
                    index.avg_field_length(TITLE),
                )
                body_scores[article_id] += idf * self.body_weight * self.field_score(
                    posting.body_tf,
                    index.field_length(article_id, BODY),
                    index.avg_field_length(BODY),
                )

        normalized_query = normalize_text(query)
        padded_query = f" {normalized_query} "
        query_term_set = set(query_terms)

        results = []
        for article_id in sorted(set(title_scores) | set(body_scores)):
            article = index.articles[article_id]
            title_score = title_scores.get(article_id, 0.0)
            body_score = body_scores.get(article_id, 0.0)
            score = title_score + body_score
            if score <= 0:
                continue
            if normalized_query and padded_query in f" {normalize_text(article.title)} ":
                score += self.title_bonus
            best_field = TITLE if title_score > body_score else BODY
            results.append(SearchResult(
                article=article,
                score=score,
                snippet=self.snippet(article, best_field, query_term_set),
                matched_terms=tuple(sorted(matched[article_id])),
                matched_field=best_field,
            ))

        results.sort(key=lambda r: (-r.score, -r.article.updated_at.timestamp(), r.article.id))

        logger.debug(f"Ranked {len(results)} of {len(allowed)} candidate articles for query {normalized_query!r}")

        return results

    def snippet(self, article: Article, field: str, query_terms: Set[str]) -> str:
        """
        Excerpt of `field` centered on the first query term occurrence.

        Falls back to the beginning of the body when no term occurs in the
        field text.
        """
        text = article.title if field == TITLE else article.body
        for token in self.tokenizer.tokenize(text, field):
            if token.term in query_terms:
                return self._window(text, (token.start + token.end) // 2)
        return self._window(article.body, 0)

    def _window(self, text: str, center: int) -> str:
        if len(text) <= self.snippet_length:
            return " ".join(text.split())
        start = max(0, center - self.snippet_length // 2)
        end = min(len(text), start + self.snippet_length)
        start = max(0, end - self.snippet_length)
        excerpt = " ".join(text[start:end].split())
        if start > 0:
            excerpt = ELLIPSIS + excerpt
        if end < len(text):
            excerpt = excerpt + ELLIPSIS
        return excerpt

    def _allowed_ids(
        self,
        index: Index,
        category: Optional[Category],
        tags: Optional[Iterable[str]],
    ) -> Set[str]:
        wanted_tags = {t.strip().lower() for t in tags or () if t.strip()}
        allowed = set()
        for article_id, article in index.articles.items():
            if not article.is_published:
                continue
            if category is not None and article.category != category:
                continue
            if wanted_tags and not wanted_tags & {t.lower() for t in article.tags}:
                continue
            allowed.add(article_id)
        return allowed
