"""
Exceptions raised by the KB search engine.

Hierarchy:
- KBSearchError: base for every error the engine raises on purpose
  - ValidationError: malformed request (empty query, bad pagination, ...)
  - NotFoundError: the requested article does not exist
  - PatternCompileError: a single pattern trigger could not be compiled
  - IndexBuildError: the article corpus is inconsistent (duplicate ids)
  - RepositoryError: a collaborator could not load its data
  - ConfigurationError: invalid settings
  - InternalError: opaque wrapper for unexpected failures

Only ValidationError, NotFoundError and InternalError ever reach the HTTP
caller. PatternCompileError is recovered and aggregated into match responses,
IndexBuildError is recovered by serving the last good index snapshot.
"""

import uuid
from typing import Optional


class KBSearchError(Exception):
    """Base exception for all KB search errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(KBSearchError):
    """Request failed a contract check. Safe to show to the caller."""


class NotFoundError(KBSearchError):
    """Requested resource does not exist."""


class PatternCompileError(KBSearchError):
    """A pattern trigger failed to compile; the pattern is excluded."""

    def __init__(self, pattern_id: str, reason: str):
        self.pattern_id = pattern_id
        self.reason = reason
        super().__init__(
            f"Pattern '{pattern_id}' failed to compile: {reason}",
            {"pattern_id": pattern_id},
        )


class IndexBuildError(KBSearchError):
    """Article corpus cannot be indexed (e.g. duplicate article ids)."""


class RepositoryError(KBSearchError):
    """Article or pattern data could not be loaded."""


class ConfigurationError(KBSearchError):
    """Invalid configuration value."""


class InternalError(KBSearchError):
    """
    Unexpected failure.

    The message is always opaque; details stay in the logs and can be found
    by the correlation id.
    """

    MESSAGE = "Internal error while processing the request"

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or uuid.uuid4().hex
        super().__init__(self.MESSAGE, {"correlation_id": self.correlation_id})
