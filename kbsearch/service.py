"""
Knowledge base service: the single entry point used by the HTTP layer.

Responsibilities:
1. Validate request shape (ValidationError on bad input)
2. Resolve the current index snapshot, rebuilding lazily when the article
   repository reports a new corpus version
3. Run the relevance scorer (search) or the pattern matcher (match_ticket)
4. Shape response DTOs

Index lifecycle:
- The current index is a single immutable snapshot held in one attribute;
  a rebuild swaps it in whole, so readers see either the old or the new one.
- Rebuilds are serialized and double-checked: concurrent requests that see
  the same stale version build at most once.
- A failed build (IndexBuildError) is remembered for that version. The
  previous good snapshot keeps serving; with no previous snapshot requests
  fail with InternalError until the corpus changes.

Pattern lifecycle:
- Pattern definitions are compiled once on first use and then only on an
  explicit reload_patterns().
"""

import logging
import threading
from typing import Any, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .dto import (
    ArticleDetail,
    MatchedPatternItem,
    PatternMatchRequest,
    PatternMatchResponse,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
)
from .exceptions import IndexBuildError, InternalError, KBSearchError, NotFoundError, ValidationError
from .models import SearchResult, TicketPatternMatch
from .patterns import CompiledPatterns, PatternMatcher, compile_patterns
from .repositories import ArticleRepository, PatternRepository
from .search import Index, RelevanceScorer, Tokenizer, build_index, normalize_text

logger = logging.getLogger(__name__)

RequestModel = TypeVar("RequestModel", bound=BaseModel)

RELATED_SEARCH_SOURCE_RESULTS = 5
MAX_RELATED_SEARCHES = 5

_NO_FAILURE = object()


class KnowledgeBaseService:
    """
    KB search and ticket pattern matching over repository snapshots.

    Thread-safe: may be shared by concurrent request handlers.
    """

    def __init__(
        self,
        article_repository: ArticleRepository,
        pattern_repository: PatternRepository,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.article_repository = article_repository
        self.pattern_repository = pattern_repository

        self.tokenizer = Tokenizer(stemming=self.settings.stemming)
        self.scorer = RelevanceScorer(
            title_weight=self.settings.title_weight,
            body_weight=self.settings.body_weight,
            title_bonus=self.settings.title_bonus,
            k1=self.settings.k1,
            b=self.settings.b,
            snippet_length=self.settings.snippet_length,
            tokenizer=self.tokenizer,
        )
        self.matcher = PatternMatcher(top_k=self.settings.pattern_top_k, tokenizer=self.tokenizer)

        self._index: Optional[Index] = None
        self._failed_version: Any = _NO_FAILURE
        self._index_lock = threading.Lock()

        self._patterns: Optional[CompiledPatterns] = None
        self._patterns_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def search(self, request: Union[SearchRequest, Mapping[str, Any]]) -> SearchResponse:
        """
        Search KB articles.

        Args:
            request: SearchRequest or equivalent dict

        Returns:
            SearchResponse with one page of results and the full ranked count

        Raises:
            ValidationError: empty query, invalid category or pagination
            InternalError: no usable index or unexpected failure
        """
        search_request = self._validate(SearchRequest, request, "Search request")
        query = search_request.query.strip()
        if not query:
            raise ValidationError("Search query is required")

        limit = search_request.limit or self.settings.default_limit
        if limit > self.settings.max_limit:
            raise ValidationError(f"limit must be at most {self.settings.max_limit}, got {limit}")
        offset = search_request.offset

        try:
            index = self.current_index()
            ranked = self.scorer.rank(query, index, search_request.category, search_request.tags)
            page = ranked[offset:offset + limit]
            normalized_query = normalize_text(query)

            logger.info(
                f"Search {normalized_query!r}: {len(ranked)} results, "
                f"returning {len(page)} (offset={offset}, limit={limit}, index version={index.version})"
            )

            return SearchResponse(
                results=[SearchResultItem.from_result(result) for result in page],
                total=len(ranked),
                query=normalized_query,
                related_searches=related_searches(normalized_query, ranked),
            )
        except KBSearchError:
            raise
        except Exception as e:
            raise self._internal_error("search", e) from e

    def match_ticket(self, request: Union[PatternMatchRequest, Mapping[str, Any]]) -> PatternMatchResponse:
        """
        Match a ticket against the configured patterns.

        Patterns whose trigger failed to compile are not matched and are
        listed in excluded_pattern_ids. Ids defined more than once keep their
        first definition active and are listed in duplicate_pattern_ids.

        Raises:
            ValidationError: empty ticket id or text
            InternalError: unexpected failure
        """
        match_request = self._validate(PatternMatchRequest, request, "Pattern match request")
        ticket_id = match_request.ticket_id.strip()
        if not ticket_id:
            raise ValidationError("ticket_id is required")
        if not match_request.ticket_text.strip():
            raise ValidationError("ticket_text is required")

        try:
            compiled = self.compiled_patterns()
            matches = self.matcher.match(match_request.ticket_text, compiled.patterns)
            result = TicketPatternMatch(
                ticket_id=ticket_id,
                matches=tuple(matches),
                excluded_pattern_ids=compiled.excluded_pattern_ids,
                duplicate_pattern_ids=compiled.duplicate_pattern_ids,
            )

            logger.info(
                f"Ticket {ticket_id}: {len(result.matches)} pattern matches "
                f"({len(result.excluded_pattern_ids)} patterns excluded)"
            )

            return PatternMatchResponse(
                ticket_id=result.ticket_id,
                matches=[MatchedPatternItem.from_match(match) for match in result.matches],
                excluded_pattern_ids=list(result.excluded_pattern_ids),
                duplicate_pattern_ids=list(result.duplicate_pattern_ids),
                top_article_id=result.top_article_id,
            )
        except KBSearchError:
            raise
        except Exception as e:
            raise self._internal_error("match_ticket", e) from e

    def get_article(self, article_id: str) -> ArticleDetail:
        """
        Look up one published article in the current index snapshot.

        Drafts and archived articles are not visible, same as in search.

        Raises:
            NotFoundError: no published article with this id
            InternalError: no usable index
        """
        article = self.current_index().articles.get(article_id.strip())
        if article is None or not article.is_published:
            raise NotFoundError(f"Article not found: {article_id}", {"article_id": article_id})
        return ArticleDetail.from_article(article)

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    def current_index(self) -> Index:
        """
        Get the index for the repository's current corpus version.

        Rebuilds at most once per corpus version.

        Raises:
            InternalError: the build failed and there is no previous snapshot
        """
        index = self._index
        if index is not None and index.version == self.article_repository.current_snapshot().version:
            return index

        with self._index_lock:
            # Another request may have rebuilt while we waited for the lock
            snapshot = self.article_repository.current_snapshot()
            index = self._index
            if index is not None and index.version == snapshot.version:
                return index

            if self._failed_version is not _NO_FAILURE and self._failed_version == snapshot.version:
                if index is not None:
                    return index
                error = InternalError()
                logger.error(
                    f"No usable index: corpus version {snapshot.version} failed to build "
                    f"[correlation_id={error.correlation_id}]"
                )
                raise error

            try:
                new_index = build_index(snapshot.articles, snapshot.version, self.tokenizer)
            except IndexBuildError as e:
                self._failed_version = snapshot.version
                if index is None:
                    error = InternalError()
                    logger.error(
                        f"Index build failed for corpus version {snapshot.version} and no previous "
                        f"index exists: {e.message} [correlation_id={error.correlation_id}]"
                    )
                    raise error from e
                logger.error(
                    f"Index build failed for corpus version {snapshot.version}: {e.message}. "
                    f"Serving previous index version {index.version}"
                )
                return index

            self._index = new_index
            self._failed_version = _NO_FAILURE
            logger.info(
                f"Index rebuilt: version={snapshot.version}, articles={new_index.document_count}, "
                f"terms={len(new_index.postings)}"
            )
            return new_index

    @property
    def index_version(self) -> Optional[Any]:
        index = self._index
        return index.version if index is not None else None

    @property
    def article_count(self) -> int:
        index = self._index
        return index.document_count if index is not None else 0

    # ------------------------------------------------------------------
    # Pattern lifecycle
    # ------------------------------------------------------------------

    def compiled_patterns(self) -> CompiledPatterns:
        """Compiled pattern set, loaded from the repository on first use."""
        compiled = self._patterns
        if compiled is not None:
            return compiled
        with self._patterns_lock:
            if self._patterns is None:
                self._patterns = compile_patterns(self.pattern_repository.current_patterns(), self.tokenizer)
            return self._patterns

    def reload_patterns(self) -> CompiledPatterns:
        """
        Reload pattern definitions from the repository and recompile.

        The previous compiled set keeps serving until the new one is ready,
        and stays in place if the repository fails to reload.

        Raises:
            InternalError: the repository could not be reloaded
        """
        with self._patterns_lock:
            try:
                self.pattern_repository.reload()
                definitions = self.pattern_repository.current_patterns()
            except Exception as e:
                raise self._internal_error("reload_patterns", e) from e
            compiled = compile_patterns(definitions, self.tokenizer)
            self._patterns = compiled
        logger.info(
            f"Patterns reloaded: {len(compiled.patterns)} active, {len(compiled.errors)} excluded, "
            f"{len(compiled.duplicates)} duplicates"
        )
        return compiled

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate(
        self,
        model: Type[RequestModel],
        request: Union[RequestModel, Mapping[str, Any]],
        what: str,
    ) -> RequestModel:
        if isinstance(request, model):
            return request
        if not isinstance(request, Mapping):
            raise ValidationError(f"{what} must be an object")
        try:
            return model.model_validate(dict(request))
        except PydanticValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
                for error in e.errors()
            ]
            logger.debug(f"{what} rejected: {problems}")
            raise ValidationError(f"Invalid {what.lower()}: {'; '.join(problems)}", {"errors": problems})

    def _internal_error(self, operation: str, exc: Exception) -> InternalError:
        error = InternalError()
        logger.exception(f"Unexpected error in {operation} [correlation_id={error.correlation_id}]: {exc}")
        return error


def related_searches(normalized_query: str, ranked: List[SearchResult]) -> List[str]:
    """
    Suggest follow-up searches from the tags of the top results.

    Tags already contained in the query as whole words are skipped. Order
    follows rank, then tag name within an article.
    """
    padded_query = f" {normalized_query} "
    suggestions: List[str] = []
    for result in ranked[:RELATED_SEARCH_SOURCE_RESULTS]:
        for tag in sorted(result.article.tags):
            normalized_tag = normalize_text(tag)
            if not normalized_tag or f" {normalized_tag} " in padded_query or tag in suggestions:
                continue
            suggestions.append(tag)
            if len(suggestions) >= MAX_RELATED_SEARCHES:
                return suggestions
    return suggestions
