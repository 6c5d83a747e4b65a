"""
Ticket pattern matching.

Patterns are configuration: raw PatternDefinitions are compiled once per
load into Patterns with precompiled triggers, then matched against incoming
ticket text with a confidence in [0, 1].

Components:
- triggers: Trigger kinds (keywords, regex, phrase) and pattern compilation
- matcher: Confidence ranking, top-K cap and suggested actions
"""

from .triggers import (
    CompiledPatterns,
    KeywordTrigger,
    Pattern,
    PhraseTrigger,
    RegexTrigger,
    compile_patterns,
)
from .matcher import PatternMatcher, suggest_action

__all__ = [
    "CompiledPatterns",
    "KeywordTrigger",
    "Pattern",
    "PhraseTrigger",
    "RegexTrigger",
    "compile_patterns",
    "PatternMatcher",
    "suggest_action",
]
