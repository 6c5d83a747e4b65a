"""
Unit tests for article and pattern repositories.
"""

from datetime import timezone

import pytest

from kb_factories import make_article
from kbsearch.config import Settings
from kbsearch.exceptions import RepositoryError
from kbsearch.models import ArticleStatus, Category
from kbsearch.patterns import compile_patterns
from kbsearch.repositories import (
    InMemoryArticleRepository,
    YamlArticleRepository,
    YamlPatternRepository,
    article_from_dict,
    pattern_from_dict,
)


class TestInMemoryArticleRepository:
    """Test version bumps on change"""

    def test_initial_snapshot(self, kb_articles):
        snapshot = InMemoryArticleRepository(kb_articles).current_snapshot()

        assert snapshot.version == 1
        assert len(snapshot.articles) == 5

    def test_replace_bumps_version(self, kb_articles):
        repository = InMemoryArticleRepository(kb_articles)

        assert repository.replace(kb_articles[:2]) == 2
        snapshot = repository.current_snapshot()
        assert snapshot.version == 2
        assert [a.id for a in snapshot.articles] == ["KB-1", "KB-2"]

    def test_upsert_replaces_by_id(self, kb_articles):
        repository = InMemoryArticleRepository(kb_articles)

        repository.upsert(make_article("KB-1", "Password Reset (updated)"))
        snapshot = repository.current_snapshot()

        assert snapshot.version == 2
        assert len(snapshot.articles) == 5
        assert [a.title for a in snapshot.articles if a.id == "KB-1"] == ["Password Reset (updated)"]

    def test_snapshot_is_stable(self, kb_articles):
        repository = InMemoryArticleRepository(kb_articles)
        before = repository.current_snapshot()

        repository.replace([])

        assert len(before.articles) == 5
        assert before.version == 1


class TestBundledData:
    """Test the demo YAML files shipped with the package"""

    def test_bundled_articles_load(self):
        snapshot = YamlArticleRepository(Settings().articles_path).current_snapshot()

        ids = [a.id for a in snapshot.articles]
        assert "KB-001" in ids
        assert len(ids) == len(set(ids))
        password = next(a for a in snapshot.articles if a.id == "KB-001")
        assert password.category is Category.ACCOUNT_MANAGEMENT
        assert password.updated_at.tzinfo == timezone.utc
        assert "password" in password.tags

    def test_bundled_patterns_compile_cleanly(self):
        definitions = YamlPatternRepository(Settings().patterns_path).current_patterns()
        compiled = compile_patterns(definitions)

        assert compiled.excluded_pattern_ids == ()
        assert "vpn-disconnect" in [p.id for p in compiled.patterns]


class TestYamlArticleRepository:
    """Test YAML article loading"""

    def test_load_and_reload(self, tmp_path):
        path = tmp_path / "articles.yaml"
        path.write_text(
            "articles:\n"
            "  - id: KB-1\n"
            "    title: VPN Guide\n"
            "    body: Restart the client\n"
            "    category: TECHNICAL_SUPPORT\n"
            "    tags: [vpn]\n"
            "    created_at: 2024-01-01\n"
            "    updated_at: '2024-02-01T10:00:00+00:00'\n"
        )
        repository = YamlArticleRepository(path)

        snapshot = repository.current_snapshot()
        assert snapshot.version == 1
        assert snapshot.articles[0].tags == frozenset({"vpn"})
        assert snapshot.articles[0].updated_at.hour == 10

        path.write_text(path.read_text() + "    status: archived\n")
        reloaded = repository.reload()

        assert reloaded.version == 2
        assert reloaded.articles[0].status is ArticleStatus.ARCHIVED

    def test_empty_file(self, tmp_path):
        path = tmp_path / "articles.yaml"
        path.write_text("")

        assert YamlArticleRepository(path).current_snapshot().articles == ()

    def test_missing_file(self, tmp_path):
        with pytest.raises(RepositoryError):
            YamlArticleRepository(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "articles.yaml"
        path.write_text("articles: [unclosed\n")

        with pytest.raises(RepositoryError):
            YamlArticleRepository(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "articles.yaml"
        path.write_text("articles: not-a-list\n")

        with pytest.raises(RepositoryError):
            YamlArticleRepository(path)


class TestRecordParsing:
    """Test dict-to-model conversion"""

    def test_article_defaults(self):
        article = article_from_dict({
            "id": 42,
            "title": "Billing",
            "category": "BILLING_PAYMENTS",
            "created_at": "2024-03-01",
        })

        assert article.id == "42"
        assert article.body == ""
        assert article.status is ArticleStatus.PUBLISHED
        assert article.updated_at == article.created_at

    @pytest.mark.parametrize("stamp", ["2024-03-01T10:00:00Z", "2024-03-01T10:00:00z", "2024-03-01T10:00:00+00:00"])
    def test_utc_timestamps(self, stamp):
        article = article_from_dict({"id": "KB-1", "title": "VPN", "category": "FAQ", "created_at": stamp})

        assert article.created_at.utcoffset().total_seconds() == 0
        assert article.created_at.astimezone(timezone.utc).hour == 10

    def test_offset_timestamp_kept(self):
        article = article_from_dict({
            "id": "KB-1",
            "title": "VPN",
            "category": "FAQ",
            "created_at": "2024-03-01T12:00:00+02:00",
        })

        assert article.created_at.astimezone(timezone.utc).hour == 10

    @pytest.mark.parametrize("record", [
        {"title": "No id", "category": "FAQ", "created_at": "2024-01-01"},
        {"id": "KB-1", "title": "Bad category", "category": "NOPE", "created_at": "2024-01-01"},
        {"id": "KB-1", "title": "Bad date", "category": "FAQ", "created_at": "yesterday"},
        {"id": "KB-1", "title": "Bad status", "category": "FAQ", "created_at": "2024-01-01", "status": "gone"},
        ["not", "a", "mapping"],
    ])
    def test_invalid_article_records(self, record):
        with pytest.raises(RepositoryError):
            article_from_dict(record)

    def test_pattern_kind_and_category_passed_through(self):
        """Test that invalid kinds load and are excluded at compile time instead"""
        definition = pattern_from_dict({"id": "p1", "kind": "fuzzy", "category": "NOPE", "keywords": "vpn"})

        assert definition.kind == "fuzzy"
        assert definition.keywords == ("vpn",)
        assert compile_patterns([definition]).excluded_pattern_ids == ("p1",)

    def test_pattern_missing_id(self):
        with pytest.raises(RepositoryError):
            pattern_from_dict({"kind": "keywords", "category": "FAQ"})
