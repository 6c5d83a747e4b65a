"""
Configuration from environment variables.

Env vars (all optional):
    KB_TITLE_WEIGHT     Title match multiplier (default: 3.0)
    KB_BODY_WEIGHT      Body match multiplier (default: 1.0)
    KB_TITLE_BONUS      Bonus when the query appears in the title (default: 2.0)
    KB_BM25_K1          BM25 term frequency saturation (default: 1.2)
    KB_BM25_B           BM25 length normalization (default: 0.75)
    KB_SNIPPET_LENGTH   Snippet size in characters (default: 160)
    KB_DEFAULT_LIMIT    Page size when a search omits limit (default: 20)
    KB_MAX_LIMIT        Largest accepted page size (default: 100)
    KB_PATTERN_TOP_K    Maximum pattern matches per ticket (default: 5)
    KB_STEMMING         "true" to enable Snowball stemming (default: false)
    KB_ARTICLES_PATH    YAML file with articles (default: bundled demo data)
    KB_PATTERNS_PATH    YAML file with patterns (default: bundled demo data)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

from .exceptions import ConfigurationError

DATA_DIR = Path(__file__).parent / "data"

T = TypeVar("T")


@dataclass(frozen=True)
class Settings:
    title_weight: float = 3.0
    body_weight: float = 1.0
    title_bonus: float = 2.0
    k1: float = 1.2
    b: float = 0.75
    snippet_length: int = 160
    default_limit: int = 20
    max_limit: int = 100
    pattern_top_k: int = 5
    stemming: bool = False
    articles_path: Path = DATA_DIR / "articles.yaml"
    patterns_path: Path = DATA_DIR / "patterns.yaml"

    def __post_init__(self):
        if self.default_limit <= 0 or self.max_limit < self.default_limit:
            raise ConfigurationError(
                f"Invalid page limits: default_limit={self.default_limit}, max_limit={self.max_limit}"
            )
        if self.pattern_top_k <= 0:
            raise ConfigurationError(f"pattern_top_k must be positive, got {self.pattern_top_k}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: a variable is present but cannot be parsed
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, parse: Callable[[str], T], default: T) -> T:
            value = env.get(name)
            if value is None or value.strip() == "":
                return default
            try:
                return parse(value.strip())
            except ValueError:
                raise ConfigurationError(f"Invalid value for {name}: {value!r}")

        return cls(
            title_weight=read("KB_TITLE_WEIGHT", float, defaults.title_weight),
            body_weight=read("KB_BODY_WEIGHT", float, defaults.body_weight),
            title_bonus=read("KB_TITLE_BONUS", float, defaults.title_bonus),
            k1=read("KB_BM25_K1", float, defaults.k1),
            b=read("KB_BM25_B", float, defaults.b),
            snippet_length=read("KB_SNIPPET_LENGTH", int, defaults.snippet_length),
            default_limit=read("KB_DEFAULT_LIMIT", int, defaults.default_limit),
            max_limit=read("KB_MAX_LIMIT", int, defaults.max_limit),
            pattern_top_k=read("KB_PATTERN_TOP_K", int, defaults.pattern_top_k),
            stemming=read("KB_STEMMING", _parse_bool, defaults.stemming),
            articles_path=read("KB_ARTICLES_PATH", Path, defaults.articles_path),
            patterns_path=read("KB_PATTERNS_PATH", Path, defaults.patterns_path),
        )


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValueError(value)
