"""
Unit tests for pattern compilation and ticket matching.
"""

import pytest

from kbsearch.models import Category, PatternDefinition, SuggestedAction, TriggerKind
from kbsearch.patterns import (
    KeywordTrigger,
    PatternMatcher,
    PhraseTrigger,
    RegexTrigger,
    compile_patterns,
    suggest_action,
)
from kbsearch.search.tokenizer import Tokenizer


def keyword_pattern(pattern_id, *keywords, category=Category.TECHNICAL_SUPPORT, suggested=()):
    return PatternDefinition(
        id=pattern_id,
        kind=TriggerKind.KEYWORDS,
        category=category,
        keywords=keywords,
        suggested_article_ids=suggested,
    )


def match(ticket_text, definitions, top_k=5):
    compiled = compile_patterns(definitions)
    return PatternMatcher(top_k=top_k).match(ticket_text, compiled.patterns)


class TestCompilePatterns:
    """Test compilation of raw pattern definitions"""

    def test_compiles_each_trigger_kind(self, pattern_definitions):
        compiled = compile_patterns(pattern_definitions)

        triggers = {p.id: p.trigger for p in compiled.patterns}
        assert isinstance(triggers["vpn-disconnect"], KeywordTrigger)
        assert isinstance(triggers["error-code"], RegexTrigger)
        assert isinstance(triggers["locked-out"], PhraseTrigger)

    def test_invalid_regex_excluded(self, pattern_definitions):
        """Test that a broken regex excludes only its own pattern"""
        compiled = compile_patterns(pattern_definitions)

        assert compiled.excluded_pattern_ids == ("broken-regex",)
        assert [p.id for p in compiled.patterns] == ["error-code", "locked-out", "vpn-disconnect"]
        assert compiled.errors[0].pattern_id == "broken-regex"
        assert "invalid regular expression" in compiled.errors[0].reason

    def test_duplicate_ids_reported_separately(self):
        """Test that the first definition of an id wins and later ones are listed as duplicates"""
        compiled = compile_patterns([
            keyword_pattern("vpn", "vpn"),
            keyword_pattern("vpn", "network"),
            keyword_pattern("vpn", "tunnel"),
        ])

        assert len(compiled.patterns) == 1
        assert compiled.patterns[0].trigger.keywords == frozenset({"vpn"})
        assert compiled.excluded_pattern_ids == ()
        assert compiled.errors == ()
        assert compiled.duplicate_pattern_ids == ("vpn",)
        assert len(compiled.duplicates) == 2

    def test_duplicate_of_broken_pattern(self):
        """Test that a broken first definition is excluded and its repeats stay duplicates"""
        compiled = compile_patterns([
            keyword_pattern("noise", "the"),
            keyword_pattern("noise", "vpn"),
        ])

        assert compiled.patterns == ()
        assert compiled.excluded_pattern_ids == ("noise",)
        assert compiled.duplicate_pattern_ids == ("noise",)

    def test_stopword_only_keywords_excluded(self):
        compiled = compile_patterns([keyword_pattern("noise", "the", "a", "of")])

        assert compiled.patterns == ()
        assert compiled.excluded_pattern_ids == ("noise",)

    def test_empty_regex_and_phrase_excluded(self):
        compiled = compile_patterns([
            PatternDefinition(id="empty-regex", kind=TriggerKind.REGEX, category=Category.OTHER),
            PatternDefinition(id="empty-phrase", kind=TriggerKind.PHRASE, category=Category.OTHER, expression=" !! "),
        ])

        assert compiled.patterns == ()
        assert set(compiled.excluded_pattern_ids) == {"empty-regex", "empty-phrase"}

    def test_unknown_kind_and_category_excluded(self):
        compiled = compile_patterns([
            PatternDefinition(id="fuzzy", kind="fuzzy", category=Category.OTHER, keywords=("vpn",)),
            PatternDefinition(id="no-category", kind=TriggerKind.KEYWORDS, category="NOPE", keywords=("vpn",)),
            keyword_pattern("ok", "vpn"),
        ])

        assert [p.id for p in compiled.patterns] == ["ok"]
        assert set(compiled.excluded_pattern_ids) == {"fuzzy", "no-category"}

    def test_multiword_keywords_split_into_terms(self):
        compiled = compile_patterns([keyword_pattern("conn", "Connection Timeout", "VPN")])
        assert compiled.patterns[0].trigger.keywords == frozenset({"connection", "timeout", "vpn"})

    def test_empty_pattern_set(self):
        compiled = compile_patterns([])
        assert compiled.patterns == ()
        assert compiled.excluded_pattern_ids == ()


class TestKeywordConfidence:
    """Test graded keyword confidence"""

    def test_all_keywords_found(self, pattern_definitions):
        matches = match("VPN disconnect after a timeout", pattern_definitions)

        assert matches[0].pattern_id == "vpn-disconnect"
        assert matches[0].confidence == pytest.approx(1.0)
        assert matches[0].matched_keywords == ("disconnect", "timeout", "vpn")

    def test_one_of_three_keywords_found(self, pattern_definitions):
        matches = match("My VPN is slow today", pattern_definitions)

        assert len(matches) == 1
        assert matches[0].confidence == pytest.approx(1 / 3)
        assert matches[0].matched_keywords == ("vpn",)

    def test_case_and_punctuation_insensitive(self, pattern_definitions):
        matches = match("vpn!! DISCONNECT... Timeout?", pattern_definitions)
        assert matches[0].confidence == pytest.approx(1.0)

    def test_repeated_keyword_counts_once(self, pattern_definitions):
        matches = match("vpn vpn vpn vpn", pattern_definitions)
        assert matches[0].confidence == pytest.approx(1 / 3)

    def test_stemmed_matching(self):
        definitions = [keyword_pattern("vpn-disconnect", "vpn", "disconnect", "timeout")]
        tokenizer = Tokenizer(stemming=True)
        compiled = compile_patterns(definitions, tokenizer)

        matches = PatternMatcher(tokenizer=tokenizer).match("VPN disconnected, timeouts", compiled.patterns)

        assert matches[0].confidence == pytest.approx(1.0)

    def test_no_match_returns_empty(self, pattern_definitions):
        assert match("How do I update my invoice address?", pattern_definitions) == []


class TestRegexAndPhraseTriggers:
    """Test binary triggers"""

    def test_regex_on_raw_text_case_insensitive(self, pattern_definitions):
        matches = match("Got err-1234 when saving", pattern_definitions)

        assert [m.pattern_id for m in matches] == ["error-code"]
        assert matches[0].confidence == 1.0
        assert matches[0].matched_keywords == ("err-1234",)

    def test_regex_no_match(self, pattern_definitions):
        assert match("Got ERR-12 when saving", pattern_definitions) == []

    def test_phrase_match(self, pattern_definitions):
        matches = match("I'm LOCKED-OUT of my account", pattern_definitions)

        assert [m.pattern_id for m in matches] == ["locked-out"]
        assert matches[0].confidence == 1.0
        assert matches[0].matched_keywords == ("locked out",)

    def test_phrase_is_word_aligned(self, pattern_definitions):
        assert match("The door was locked outside", pattern_definitions) == []


class TestRanking:
    """Test ordering and top-K cap"""

    def test_sorted_by_confidence(self, pattern_definitions):
        matches = match("VPN disconnect timeout, then ERR-5001", pattern_definitions + [
            keyword_pattern("network", "network", "vpn", "router", "wifi"),
        ])

        assert [m.pattern_id for m in matches] == ["error-code", "vpn-disconnect", "network"]
        assert [m.confidence for m in matches] == pytest.approx([1.0, 1.0, 0.25])

    def test_ties_broken_by_pattern_id(self):
        matches = match("vpn", [
            keyword_pattern("zeta", "vpn"),
            keyword_pattern("alpha", "vpn"),
            keyword_pattern("mid", "vpn"),
        ])

        assert [m.pattern_id for m in matches] == ["alpha", "mid", "zeta"]

    def test_top_k_cap(self):
        definitions = [keyword_pattern(f"p{i}", "vpn") for i in range(8)]

        assert len(match("vpn", definitions)) == 5
        assert len(match("vpn", definitions, top_k=3)) == 3
        assert len(match("vpn", definitions, top_k=20)) == 8

    def test_invalid_top_k(self):
        with pytest.raises(ValueError):
            PatternMatcher(top_k=0)

    def test_confidence_within_bounds(self, pattern_definitions):
        for text in ["vpn", "vpn timeout", "ERR-1000 locked out vpn disconnect timeout"]:
            for m in match(text, pattern_definitions):
                assert 0.0 < m.confidence <= 1.0


class TestSuggestedAction:
    """Test suggested action thresholds"""

    def test_high_confidence_sends_article(self):
        assert suggest_action(1.0, Category.TECHNICAL_SUPPORT) is SuggestedAction.SEND_ARTICLE
        assert suggest_action(0.7, Category.BILLING_PAYMENTS) is SuggestedAction.SEND_ARTICLE

    def test_troubleshooting_never_sent(self):
        assert suggest_action(1.0, Category.TROUBLESHOOTING) is SuggestedAction.USE_AS_REFERENCE

    def test_low_confidence_escalates(self):
        assert suggest_action(0.25, Category.TECHNICAL_SUPPORT) is SuggestedAction.ESCALATE

    def test_middle_confidence_is_reference(self):
        assert suggest_action(0.3, Category.SECURITY) is SuggestedAction.USE_AS_REFERENCE
        assert suggest_action(0.69, Category.SECURITY) is SuggestedAction.USE_AS_REFERENCE

    def test_action_attached_to_matches(self, pattern_definitions):
        matches = {m.pattern_id: m for m in match("VPN disconnect timeout ERR-1001", pattern_definitions)}

        assert matches["vpn-disconnect"].suggested_action is SuggestedAction.SEND_ARTICLE
        assert matches["vpn-disconnect"].suggested_article_ids == ("KB-5",)
        assert matches["error-code"].suggested_action is SuggestedAction.USE_AS_REFERENCE
