"""
Pattern triggers and their compilation.

Triggers are compiled once when a pattern set is loaded, never per request.
A definition that fails to compile is reported as a PatternCompileError and
left out of the set; the remaining patterns compile normally.

Trigger kinds:
- keywords: set of normalized terms, confidence = share of terms found
- regex: case-insensitive regular expression on the raw ticket text, binary
- phrase: normalized phrase on word boundaries of the normalized text, binary
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from ..exceptions import PatternCompileError
from ..models import Category, PatternDefinition, TriggerKind
from ..search.tokenizer import Tokenizer, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketText:
    """Ticket text prepared once per request for all triggers."""
    raw: str
    normalized: str
    terms: FrozenSet[str]

    @classmethod
    def prepare(cls, text: str, tokenizer: Tokenizer) -> "TicketText":
        return cls(
            raw=text,
            normalized=normalize_text(text),
            terms=frozenset(tokenizer.terms(text)),
        )


@dataclass(frozen=True)
class TriggerHit:
    confidence: float
    matched_keywords: Tuple[str, ...]


class Trigger(ABC):
    """Compiled matching condition of a pattern."""

    @abstractmethod
    def evaluate(self, ticket: TicketText) -> Optional[TriggerHit]:
        """
        Evaluate against prepared ticket text.

        Returns:
            TriggerHit with confidence in (0, 1], or None when nothing matched
        """
        pass


@dataclass(frozen=True)
class KeywordTrigger(Trigger):
    keywords: FrozenSet[str]

    def evaluate(self, ticket: TicketText) -> Optional[TriggerHit]:
        found = self.keywords & ticket.terms
        if not found:
            return None
        confidence = min(1.0, len(found) / len(self.keywords))
        return TriggerHit(confidence, tuple(sorted(found)))


@dataclass(frozen=True)
class RegexTrigger(Trigger):
    regex: "re.Pattern"

    def evaluate(self, ticket: TicketText) -> Optional[TriggerHit]:
        match = self.regex.search(ticket.raw)
        if match is None:
            return None
        return TriggerHit(1.0, (match.group(0),))


@dataclass(frozen=True)
class PhraseTrigger(Trigger):
    phrase: str

    def evaluate(self, ticket: TicketText) -> Optional[TriggerHit]:
        if f" {self.phrase} " not in f" {ticket.normalized} ":
            return None
        return TriggerHit(1.0, (self.phrase,))


@dataclass(frozen=True)
class Pattern:
    """A pattern with its precompiled trigger."""
    id: str
    trigger: Trigger
    category: Category
    suggested_article_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CompiledPatterns:
    """
    Result of compiling a pattern set.

    `errors` are definitions left out because their trigger failed to compile.
    `duplicates` are later definitions of an id that was already defined; the
    first definition of that id stays active, so those ids are reported apart
    from the excluded ones.
    """
    patterns: Tuple[Pattern, ...]
    errors: Tuple[PatternCompileError, ...] = ()
    duplicates: Tuple[PatternCompileError, ...] = ()

    @property
    def excluded_pattern_ids(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(error.pattern_id for error in self.errors))

    @property
    def duplicate_pattern_ids(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(error.pattern_id for error in self.duplicates))


def compile_trigger(definition: PatternDefinition, tokenizer: Tokenizer) -> Trigger:
    """
    Compile one definition's trigger.

    Raises:
        PatternCompileError: trigger is invalid or matches nothing
    """
    try:
        kind = TriggerKind(definition.kind)
    except ValueError:
        raise PatternCompileError(definition.id, f"unknown trigger kind {definition.kind!r}")

    if kind is TriggerKind.KEYWORDS:
        keywords = set()
        for keyword in definition.keywords:
            keywords.update(tokenizer.terms(keyword))
        if not keywords:
            raise PatternCompileError(definition.id, "no searchable keywords after normalization")
        return KeywordTrigger(frozenset(keywords))

    if kind is TriggerKind.REGEX:
        if not definition.expression:
            raise PatternCompileError(definition.id, "empty regular expression")
        try:
            return RegexTrigger(re.compile(definition.expression, re.IGNORECASE))
        except re.error as e:
            raise PatternCompileError(definition.id, f"invalid regular expression: {e}")

    phrase = normalize_text(definition.expression)
    if not phrase:
        raise PatternCompileError(definition.id, "empty phrase")
    return PhraseTrigger(phrase)


def _category(definition: PatternDefinition) -> Category:
    try:
        return Category(definition.category)
    except ValueError:
        raise PatternCompileError(definition.id, f"unknown category {definition.category!r}")


def compile_patterns(
    definitions: Iterable[PatternDefinition],
    tokenizer: Optional[Tokenizer] = None,
) -> CompiledPatterns:
    """
    Compile a whole pattern set.

    Never raises for a bad definition: each failure is logged as a warning and
    collected in CompiledPatterns.errors. Only the first definition of a
    pattern id is compiled; later ones are collected in
    CompiledPatterns.duplicates.

    Args:
        definitions: Raw pattern definitions from a PatternRepository
        tokenizer: Tokenizer used for keyword normalization (must match the
            one used on ticket text)

    Returns:
        CompiledPatterns sorted by pattern id
    """
    tokenizer = tokenizer or Tokenizer()
    patterns: List[Pattern] = []
    errors: List[PatternCompileError] = []
    duplicates: List[PatternCompileError] = []
    seen: Set[str] = set()

    for definition in definitions:
        if definition.id in seen:
            duplicate = PatternCompileError(definition.id, "duplicate pattern id")
            logger.warning(f"Ignoring pattern: {duplicate.message}")
            duplicates.append(duplicate)
            continue
        seen.add(definition.id)
        try:
            trigger = compile_trigger(definition, tokenizer)
            category = _category(definition)
        except PatternCompileError as e:
            logger.warning(f"Excluding pattern: {e.message}")
            errors.append(e)
            continue
        patterns.append(Pattern(
            id=definition.id,
            trigger=trigger,
            category=category,
            suggested_article_ids=tuple(definition.suggested_article_ids),
        ))

    patterns.sort(key=lambda p: p.id)
    logger.info(
        f"Compiled {len(patterns)} patterns ({len(errors)} excluded, {len(duplicates)} duplicate definitions ignored)"
    )
    return CompiledPatterns(tuple(patterns), tuple(errors), tuple(duplicates))
