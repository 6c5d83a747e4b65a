"""
Lexical KB article search.

Components:
- tokenizer: Text normalization and term extraction (title/body fields)
- stemmer: Optional Snowball stemming for the tokenizer
- index_builder: Immutable inverted index with corpus statistics
- scorer: Field-weighted BM25 scoring, filtering, ranking and snippets

The index is a snapshot: it is rebuilt from a whole corpus, never patched.
"""

from .tokenizer import Token, Tokenizer, tokenize, normalize_text
from .stemmer import stem
from .index_builder import Index, Posting, build_index
from .scorer import RelevanceScorer

__all__ = [
    "Token",
    "Tokenizer",
    "tokenize",
    "normalize_text",
    "stem",
    "Index",
    "Posting",
    "build_index",
    "RelevanceScorer",
]
