"""
Inverted index builder for KB articles.

Builds an immutable snapshot from one article corpus:
- term → postings (one per article containing the term, sorted by article id)
- per-field term frequencies and token positions in each posting
- per-field document lengths and averages (for BM25 length normalization)
- per-term document frequency (for IDF)

Build is pure and order-independent: postings are accumulated per article
id and every ordered output is sorted by article id, so the same articles
in any order produce an equal Index.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import IndexBuildError
from ..models import Article
from .tokenizer import BODY, TITLE, Tokenizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Posting:
    """Statistics of one term in one article."""
    article_id: str
    title_tf: int
    body_tf: int
    title_positions: Tuple[int, ...]
    body_positions: Tuple[int, ...]

    def tf(self, field: str) -> int:
        return self.title_tf if field == TITLE else self.body_tf


@dataclass(frozen=True)
class Index:
    """
    Immutable inverted index snapshot.

    Never mutated after build_index() returns, so any number of readers can
    share it without locking.
    """
    postings: Mapping[str, Tuple[Posting, ...]]
    doc_freq: Mapping[str, int]
    title_lengths: Mapping[str, int]
    body_lengths: Mapping[str, int]
    articles: Mapping[str, Article]
    avg_title_length: float
    avg_body_length: float
    version: Optional[Hashable] = None

    @property
    def document_count(self) -> int:
        return len(self.articles)

    def field_length(self, article_id: str, field: str) -> int:
        lengths = self.title_lengths if field == TITLE else self.body_lengths
        return lengths.get(article_id, 0)

    def avg_field_length(self, field: str) -> float:
        return self.avg_title_length if field == TITLE else self.avg_body_length

    def postings_for(self, term: str) -> Tuple[Posting, ...]:
        return self.postings.get(term, ())


def build_index(
    articles: Iterable[Article],
    version: Optional[Hashable] = None,
    tokenizer: Optional[Tokenizer] = None,
) -> Index:
    """
    Build an inverted index from an article corpus.

    Args:
        articles: Corpus snapshot (any order)
        version: Corpus version marker the index is built from
        tokenizer: Tokenizer to use (default: non-stemming)

    Returns:
        Index snapshot

    Raises:
        IndexBuildError: two articles share an id

    Example:
        >>> index = build_index([
        ...     Article(id="KB-1", title="Password Reset", body="Reset your password",
        ...             category=Category.ACCOUNT_MANAGEMENT),
        ... ])
        >>> index.doc_freq["password"]
        1
        >>> index.postings["reset"][0].title_tf, index.postings["reset"][0].body_tf
        (1, 1)
    """
    tokenizer = tokenizer or Tokenizer()

    by_id: Dict[str, Article] = {}
    for article in articles:
        if article.id in by_id:
            raise IndexBuildError(
                f"Duplicate article id '{article.id}' in corpus snapshot",
                {"article_id": article.id},
            )
        by_id[article.id] = article

    # term -> article id -> field -> positions
    positions: Dict[str, Dict[str, Dict[str, List[int]]]] = defaultdict(
        lambda: defaultdict(lambda: {TITLE: [], BODY: []})
    )
    title_lengths: Dict[str, int] = {}
    body_lengths: Dict[str, int] = {}

    for article_id in sorted(by_id):
        article = by_id[article_id]
        for field, text, lengths in (
            (TITLE, article.title, title_lengths),
            (BODY, article.body, body_lengths),
        ):
            tokens = tokenizer.tokenize(text, field)
            lengths[article_id] = len(tokens)
            for token in tokens:
                positions[token.term][article_id][field].append(token.position)

    postings: Dict[str, Tuple[Posting, ...]] = {}
    doc_freq: Dict[str, int] = {}
    for term in sorted(positions):
        per_article = positions[term]
        postings[term] = tuple(
            Posting(
                article_id=article_id,
                title_tf=len(per_article[article_id][TITLE]),
                body_tf=len(per_article[article_id][BODY]),
                title_positions=tuple(per_article[article_id][TITLE]),
                body_positions=tuple(per_article[article_id][BODY]),
            )
            for article_id in sorted(per_article)
        )
        doc_freq[term] = len(per_article)

    count = len(by_id)
    index = Index(
        postings=MappingProxyType(postings),
        doc_freq=MappingProxyType(doc_freq),
        title_lengths=MappingProxyType(title_lengths),
        body_lengths=MappingProxyType(body_lengths),
        articles=MappingProxyType({article_id: by_id[article_id] for article_id in sorted(by_id)}),
        avg_title_length=sum(title_lengths.values()) / count if count else 0.0,
        avg_body_length=sum(body_lengths.values()) / count if count else 0.0,
        version=version,
    )

    logger.debug(f"Built KB index: {len(postings)} unique terms from {count} articles (version={version})")

    return index

