"""
app/indexing package marker.
"""

from app.indexing.client import IndexingClient, NotificationType
from app.indexing.decision_engine import DecisionEngine
from app.indexing.errors import (
    AuthError,
    ConfigError,
    IndexingError,
    NotFoundError,
    ProtocolError,
    TransportError,
)
from app.indexing.token_issuer import ServiceAccountCredentials, TokenIssuer

__all__ = [
    "AuthError",
    "ConfigError",
    "DecisionEngine",
    "IndexingClient",
    "IndexingError",
    "NotFoundError",
    "NotificationType",
    "ProtocolError",
    "ServiceAccountCredentials",
    "TokenIssuer",
    "TransportError",
]
