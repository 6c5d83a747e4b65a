"""Shared pytest fixtures: a small KB corpus and pattern set"""

import sys
from pathlib import Path

import pytest

# Add project root to path for kbsearch imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Add tests directory to path for kb_factories import
tests_dir = Path(__file__).parent
sys.path.insert(0, str(tests_dir))

from kb_factories import make_article, utc
from kbsearch.models import ArticleStatus, Category, PatternDefinition, TriggerKind


@pytest.fixture
def kb_articles():
    """
    Small corpus covering the main search scenarios:
    - KB-1 is about password reset in title and body
    - KB-2 mentions password reset only in its body
    - KB-4 is a draft about passwords (must never be returned)
    """
    return [
        make_article(
            "KB-1",
            "How to Reset Your Password",
            "Forgot your password? Open the login page, click Forgot Password and "
            "follow the reset link we send by email. The link is valid for 24 hours.",
            category=Category.ACCOUNT_MANAGEMENT,
            tags=["password", "login", "account"],
            updated_at=utc(2024, 11, 1),
        ),
        make_article(
            "KB-2",
            "Two-Factor Authentication Setup",
            "Enable 2FA under Settings > Security. If you lose your phone you may need "
            "to reset your password before you can enable two-factor authentication again.",
            category=Category.SECURITY,
            tags=["2fa", "security"],
            updated_at=utc(2024, 10, 15),
        ),
        make_article(
            "KB-3",
            "Billing and Payment FAQ",
            "Update your payment method, download invoices and request a refund "
            "from Settings > Billing.",
            category=Category.BILLING_PAYMENTS,
            tags=["billing", "invoice", "refund"],
            updated_at=utc(2024, 11, 20),
        ),
        make_article(
            "KB-4",
            "Password Policy (draft)",
            "New password reset rules for administrators.",
            category=Category.POLICIES,
            tags=["password"],
            status=ArticleStatus.DRAFT,
        ),
        make_article(
            "KB-5",
            "VPN Connection Troubleshooting",
            "If the VPN client keeps disconnecting or the connection times out, "
            "update the client and increase the idle timeout.",
            category=Category.TECHNICAL_SUPPORT,
            tags=["vpn", "network"],
            updated_at=utc(2024, 11, 28),
        ),
    ]


@pytest.fixture
def pattern_definitions():
    """One valid pattern of each trigger kind plus one broken regex"""
    return [
        PatternDefinition(
            id="vpn-disconnect",
            kind=TriggerKind.KEYWORDS,
            category=Category.TECHNICAL_SUPPORT,
            keywords=("vpn", "disconnect", "timeout"),
            suggested_article_ids=("KB-5",),
        ),
        PatternDefinition(
            id="error-code",
            kind=TriggerKind.REGEX,
            category=Category.TROUBLESHOOTING,
            expression=r"ERR-\d{4}",
            suggested_article_ids=("KB-9",),
        ),
        PatternDefinition(
            id="locked-out",
            kind=TriggerKind.PHRASE,
            category=Category.ACCOUNT_MANAGEMENT,
            expression="locked out",
            suggested_article_ids=("KB-1",),
        ),
        PatternDefinition(
            id="broken-regex",
            kind=TriggerKind.REGEX,
            category=Category.OTHER,
            expression="(unclosed",
        ),
    ]


@pytest.fixture
def article_repository(kb_articles):
    from kbsearch.repositories import InMemoryArticleRepository
    return InMemoryArticleRepository(kb_articles)


@pytest.fixture
def pattern_repository(pattern_definitions):
    from kbsearch.repositories import InMemoryPatternRepository
    return InMemoryPatternRepository(pattern_definitions)


@pytest.fixture
def kb_service(article_repository, pattern_repository):
    """Service over the in-memory corpus and patterns, default settings"""
    from kbsearch.service import KnowledgeBaseService
    return KnowledgeBaseService(article_repository, pattern_repository)
