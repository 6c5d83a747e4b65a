"""
Data-access collaborators consumed by the search service.

The service never owns article or pattern data. It reads snapshots through
two interfaces:

- ArticleRepository.current_snapshot() -> CorpusSnapshot(articles, version)
  The version marker changes whenever the corpus changes; the service uses
  it to decide when to rebuild its index.
- PatternRepository.current_patterns() -> list of PatternDefinition
  Read once per process, or again when the service is told to reload.

Implementations:
- InMemoryArticleRepository / InMemoryPatternRepository: explicit
  replace/upsert, for tests and embedding
- YamlArticleRepository / YamlPatternRepository: load from a YAML file,
  reload() on demand
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Hashable, Iterable, List, Tuple, Union

import yaml

from .exceptions import RepositoryError
from .models import Article, PatternDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorpusSnapshot:
    """Point-in-time view of the article corpus."""
    articles: Tuple[Article, ...]
    version: Hashable


class ArticleRepository(ABC):
    """Source of article corpus snapshots."""

    @abstractmethod
    def current_snapshot(self) -> CorpusSnapshot:
        """
        Get the current corpus and its version marker.

        Returns:
            CorpusSnapshot; the same version always means the same articles
        """
        pass


class PatternRepository(ABC):
    """Source of raw pattern definitions."""

    @abstractmethod
    def current_patterns(self) -> List[PatternDefinition]:
        pass

    def reload(self):
        """Optional refresh from the backing store before current_patterns()."""
        pass


class InMemoryArticleRepository(ArticleRepository):
    """Article corpus held in memory. Every change bumps the version."""

    def __init__(self, articles: Iterable[Article] = ()):
        self._lock = threading.Lock()
        self._articles: Tuple[Article, ...] = tuple(articles)
        self._version = 1

    def current_snapshot(self) -> CorpusSnapshot:
        with self._lock:
            return CorpusSnapshot(self._articles, self._version)

    def replace(self, articles: Iterable[Article]) -> int:
        """Replace the whole corpus. Returns the new version."""
        with self._lock:
            self._articles = tuple(articles)
            self._version += 1
            return self._version

    def upsert(self, article: Article) -> int:
        """Insert or replace one article by id. Returns the new version."""
        with self._lock:
            others = tuple(a for a in self._articles if a.id != article.id)
            self._articles = others + (article,)
            self._version += 1
            return self._version


class InMemoryPatternRepository(PatternRepository):

    def __init__(self, patterns: Iterable[PatternDefinition] = ()):
        self._patterns = list(patterns)

    def current_patterns(self) -> List[PatternDefinition]:
        return list(self._patterns)

    def replace(self, patterns: Iterable[PatternDefinition]) -> None:
        self._patterns = list(patterns)


def _load_yaml_list(path: Path, key: str) -> List[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise RepositoryError(f"Cannot read {path}: {e}", {"path": str(path)})
    except yaml.YAMLError as e:
        raise RepositoryError(f"Invalid YAML in {path}: {e}", {"path": str(path)})

    if data is None:
        return []
    if not isinstance(data, dict) or not isinstance(data.get(key, []), list):
        raise RepositoryError(f"{path} must contain a '{key}' list", {"path": str(path)})
    return data.get(key) or []


def _parse_timestamp(value: Union[str, date, datetime, None]) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        value = value.strip()
        # fromisoformat() only accepts a "Z" suffix from Python 3.11
        if value[-1:] in ("Z", "z"):
            value = value[:-1] + "+00:00"
        return datetime.fromisoformat(value)
    raise ValueError(f"Invalid timestamp: {value!r}")


def article_from_dict(data: Dict[str, Any]) -> Article:
    """
    Build an Article from a plain dict (YAML/JSON record).

    Raises:
        RepositoryError: required field missing or invalid
    """
    if not isinstance(data, dict):
        raise RepositoryError(f"Article record must be a mapping, got {type(data).__name__}")
    try:
        return Article(
            id=str(data["id"]),
            title=data["title"],
            body=data.get("body", ""),
            category=data["category"],
            tags=frozenset(str(t) for t in data.get("tags") or ()),
            created_at=_parse_timestamp(data["created_at"]),
            updated_at=_parse_timestamp(data.get("updated_at", data["created_at"])),
            status=data.get("status", "published"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RepositoryError(f"Invalid article record {data.get('id')!r}: {e}", {"record": data.get("id")})


def pattern_from_dict(data: Dict[str, Any]) -> PatternDefinition:
    """
    Build a PatternDefinition from a plain dict.

    Kind and category are passed through unchecked: compile_patterns()
    excludes patterns with invalid values instead of failing the whole set.
    """
    if not isinstance(data, dict):
        raise RepositoryError(f"Pattern record must be a mapping, got {type(data).__name__}")
    try:
        keywords = data.get("keywords") or ()
        if isinstance(keywords, str):
            keywords = (keywords,)
        return PatternDefinition(
            id=str(data["id"]),
            kind=data["kind"],
            category=data["category"],
            keywords=tuple(str(k) for k in keywords),
            expression=str(data.get("expression") or ""),
            suggested_article_ids=tuple(str(a) for a in data.get("suggested_article_ids") or ()),
        )
    except (KeyError, TypeError) as e:
        raise RepositoryError(f"Invalid pattern record {data.get('id')!r}: {e}", {"record": data.get("id")})


class YamlArticleRepository(ArticleRepository):
    """
    Articles loaded from a YAML file:

        articles:
          - id: KB-001
            title: How to Reset Your Password
            body: ...
            category: ACCOUNT_MANAGEMENT
            tags: [password, reset]
            created_at: 2024-01-15
            updated_at: 2024-11-01

    Loaded on construction; call reload() after the file changed.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._snapshot = CorpusSnapshot((), 0)
        self.reload()

    def reload(self) -> CorpusSnapshot:
        records = _load_yaml_list(self.path, "articles")
        articles = tuple(article_from_dict(record) for record in records)
        with self._lock:
            self._snapshot = CorpusSnapshot(articles, self._snapshot.version + 1)
            snapshot = self._snapshot
        logger.info(f"Loaded {len(articles)} articles from {self.path} (version={snapshot.version})")
        return snapshot

    def current_snapshot(self) -> CorpusSnapshot:
        with self._lock:
            return self._snapshot


class YamlPatternRepository(PatternRepository):
    """
    Pattern definitions loaded from a YAML file:

        patterns:
          - id: vpn-disconnect
            kind: keywords
            keywords: [vpn, disconnect, timeout]
            category: TECHNICAL_SUPPORT
            suggested_article_ids: [KB-007]
          - id: error-code
            kind: regex
            expression: 'ERR-\\d{4}'
            category: TROUBLESHOOTING
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._patterns: List[PatternDefinition] = []
        self.reload()

    def reload(self) -> List[PatternDefinition]:
        records = _load_yaml_list(self.path, "patterns")
        self._patterns = [pattern_from_dict(record) for record in records]
        logger.info(f"Loaded {len(self._patterns)} pattern definitions from {self.path}")
        return list(self._patterns)

    def current_patterns(self) -> List[PatternDefinition]:
        return list(self._patterns)
