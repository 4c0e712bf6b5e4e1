"""
Error taxonomy for the indexing synchronization engine.

AuthError and ConfigError are run-level: they abort a sync run before any
catalog item is touched. TransportError, ProtocolError and NotFoundError are
item-level: the decision engine records them as failed attempts and moves on.
"""

from __future__ import annotations


class IndexingError(Exception):
    """Base exception for indexing failures."""


class ConfigError(IndexingError):
    """Raised when credential material or required settings are missing."""


class AuthError(IndexingError):
    """Raised when a signed assertion cannot be built or exchanged for a token."""


class TransportError(IndexingError):
    """Raised when the indexing API cannot be reached at the network level."""


class ProtocolError(IndexingError):
    """Raised when the indexing API answers with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class NotFoundError(IndexingError):
    """Raised when a URL or catalog item is unknown to the queried side."""
