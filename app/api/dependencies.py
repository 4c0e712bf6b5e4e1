"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import HTTPException, Query, status

from app.config import get_indexing_sync_settings

logger = logging.getLogger(__name__)


def require_cron_key(
    key: str | None = Query(default=None, description="Shared secret for indexing endpoints"),
) -> None:
    """
    Reject the request unless ``key`` matches the configured cron secret.

    An unconfigured secret rejects every request.
    """

    expected = get_indexing_sync_settings().cron_secret
    if not expected or not key or not secrets.compare_digest(key, expected):
        logger.warning("Rejected indexing request with invalid key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing key.",
        )
