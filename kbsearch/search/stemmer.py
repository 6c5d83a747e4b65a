"""
Snowball Stemmer for English (via NLTK).

Optional step of the tokenizer (KB_STEMMING=true). Off by default because
stemmed terms no longer appear literally in article text, which makes
snippets and exact-title checks less precise.

Examples:
- "passwords" → "password"
- "disconnected" → "disconnect"
- "billing" → "bill"
"""

from nltk.stem.snowball import SnowballStemmer

# Initialize stemmer once (thread-safe, reusable)
_stemmer = SnowballStemmer('english')
def stem(word: str) -> str:
    """
    Stem a single word using Snowball algorithm.

    Snowball is not idempotent ("university" → "univers", which stems again), so the
    word is re-stemmed until it stops changing. A stemmed term therefore
    stems to itself.

    Args:
        word: Lowercase word to stem

    Returns:
        Stemmed word

    Examples:
        >>> stem("disconnected")
        'disconnect'
        >>> stem("timeouts")
        'timeout'
    """
    stemmed = _stemmer.stem(word)
    while stemmed != word:
        word = stemmed
        stemmed = _stemmer.stem(word)
    return stemmed
