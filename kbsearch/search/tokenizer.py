"""
Tokenizer for KB articles, queries and ticket text.

Tokenization pipeline:
1. Split on anything that is not a letter or digit (punctuation and
   underscores separate words)
2. Lowercase each word
3. Drop words shorter than 2 characters
4. Drop stopwords (common English words)
5. Optionally apply Snowball stemming ("passwords" → "password"), stemmed
   to a stable form and filtered again by rules 3 and 4

Title and body go through the same rules; the field name is carried on each
token so the index can weight them separately.
"""

import re
from typing import List, NamedTuple

from .stemmer import stem

TITLE = "title"
BODY = "body"
FIELDS = (TITLE, BODY)

MIN_TOKEN_LENGTH = 2

# English stopwords (based on Elasticsearch/Lucene standard list, plus
# pronouns and auxiliaries common in support tickets)
STOPWORDS = frozenset([
    'a', 'an', 'and', 'are', 'as', 'at', 'be', 'but', 'by',
    'for', 'if', 'in', 'into', 'is', 'it',
    'no', 'not', 'of', 'on', 'or', 'such',
    'that', 'the', 'their', 'then', 'there', 'these',
    'they', 'this', 'to', 'was', 'will', 'with',
    'am', 'been', 'can', 'do', 'does', 'from', 'has', 'have', 'he',
    'her', 'his', 'me', 'my', 'our', 'she', 'so', 'we', 'were',
    'you', 'your',
])

# Letters and digits of any script; "_" is excluded from \w on purpose
_WORD_RE = re.compile(r'[^\W_]+')
_NON_WORD_RE = re.compile(r'[\W_]+')


class Token(NamedTuple):
    """One normalized term with where it came from."""
    term: str
    position: int  # index among kept tokens of the field
    field: str
    start: int     # character offsets into the original text
    end: int


class Tokenizer:
    """
    Deterministic text tokenizer.

    Args:
        stemming: Apply Snowball stemming to every kept term
            Default: False (terms stay literal words)
    """

    def __init__(self, stemming: bool = False):
        self.stemming = stemming

    def tokenize(self, text: str, field: str = BODY) -> List[Token]:
        """
        Tokenize text into normalized terms.

        Args:
            text: Input text (may be empty)
            field: Field name recorded on each token (title/body)

        Returns:
            List of tokens in text order

        Examples:
            >>> [t.term for t in Tokenizer().tokenize("How to reset your Password?")]
            ['how', 'reset', 'password']

            >>> Tokenizer().tokenize("   ")
            []
        """
        if not text:
            return []

        tokens = []
        for match in _WORD_RE.finditer(text):
            word = match.group().lower()
            if len(word) < MIN_TOKEN_LENGTH or word in STOPWORDS:
                continue
            term = word
            if self.stemming:
                term = stem(word)
                # Stems go through the same filters so joined terms re-tokenize unchanged
                if len(term) < MIN_TOKEN_LENGTH or term in STOPWORDS:
                    continue
            tokens.append(Token(term, len(tokens), field, match.start(), match.end()))
        return tokens

    def terms(self, text: str) -> List[str]:
        """Just the terms of tokenize(text)."""
        return [token.term for token in self.tokenize(text)]


_default_tokenizer = Tokenizer()


def tokenize(text: str, field: str = BODY) -> List[Token]:
    """Tokenize with the default (non-stemming) tokenizer."""
    return _default_tokenizer.tokenize(text, field)


def normalize_text(text: str) -> str:
    """
    Lowercase, replace punctuation with spaces, collapse whitespace.

    Stopwords are kept: this is the form used for exact substring checks
    (query inside title) and for echoing the query back.

    Examples:
        >>> normalize_text("  Password-Reset   Steps! ")
        'password reset steps'
    """
    if not text:
        return ""
    return " ".join(_NON_WORD_RE.sub(" ", text.lower()).split())
