"""
Ticket-to-pattern matching.

Every compiled pattern is evaluated against the same prepared ticket text
(tokenized once per request). Patterns with zero confidence are dropped,
the rest are ranked by confidence desc, then pattern id asc, and capped to
top-K.

Suggested action per match:
    SEND_ARTICLE      confidence >= 0.7 and category is not TROUBLESHOOTING
    ESCALATE          confidence < 0.3
    USE_AS_REFERENCE  otherwise
"""

import logging
from typing import Iterable, List, Optional

from ..models import Category, MatchedPattern, SuggestedAction
from ..search.tokenizer import Tokenizer
from .triggers import Pattern, TicketText

logger = logging.getLogger(__name__)

SEND_ARTICLE_THRESHOLD = 0.7
ESCALATE_THRESHOLD = 0.3


def suggest_action(confidence: float, category: Category) -> SuggestedAction:
    if confidence >= SEND_ARTICLE_THRESHOLD and category is not Category.TROUBLESHOOTING:
        return SuggestedAction.SEND_ARTICLE
    if confidence < ESCALATE_THRESHOLD:
        return SuggestedAction.ESCALATE
    return SuggestedAction.USE_AS_REFERENCE


class PatternMatcher:
    """
    Matches ticket text against compiled patterns.

    Args:
        top_k: Maximum number of matches returned (default: 5)
        tokenizer: Must be the tokenizer keyword triggers were compiled with
    """

    def __init__(self, top_k: int = 5, tokenizer: Optional[Tokenizer] = None):
        if top_k <= 0:
            raise ValueError(f"top_k must be positive, got {top_k}")
        self.top_k = top_k
        self.tokenizer = tokenizer or Tokenizer()

    def match(self, ticket_text: str, patterns: Iterable[Pattern]) -> List[MatchedPattern]:
        """
        Rank patterns by how well their triggers match the ticket.

        Args:
            ticket_text: Raw ticket subject/body text
            patterns: Compiled patterns (see compile_patterns)

        Returns:
            Up to top_k MatchedPattern, best first

        Example:
            >>> compiled = compile_patterns([PatternDefinition(
            ...     id="vpn-drop", kind=TriggerKind.KEYWORDS, category=Category.TECHNICAL_SUPPORT,
            ...     keywords=("vpn", "disconnect", "timeout"))])
            >>> PatternMatcher().match("VPN keeps dropping", compiled.patterns)[0].confidence
            0.3333333333333333
        """
        ticket = TicketText.prepare(ticket_text, self.tokenizer)

        matches = []
        for pattern in patterns:
            hit = pattern.trigger.evaluate(ticket)
            if hit is None or hit.confidence <= 0:
                continue
            matches.append(MatchedPattern(
                pattern_id=pattern.id,
                confidence=hit.confidence,
                matched_keywords=hit.matched_keywords,
                category=pattern.category,
                suggested_article_ids=pattern.suggested_article_ids,
                suggested_action=suggest_action(hit.confidence, pattern.category),
            ))

        matches.sort(key=lambda m: (-m.confidence, m.pattern_id))

        logger.debug(f"Ticket matched {len(matches)} patterns, returning top {min(len(matches), self.top_k)}")

        return matches[:self.top_k]
