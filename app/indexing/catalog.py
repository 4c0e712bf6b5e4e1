"""
Catalog store interface consumed by the indexing sync.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.domain.indexing import CatalogItem


@dataclass(frozen=True)
class OrphanCandidate:
    """
    A previously indexed item id. ``item`` is None when the posting no longer exists.
    """

    item_id: int
    item: CatalogItem | None


class CatalogStore(ABC):
    """
    Read-only access to catalog postings.
    """

    @abstractmethod
    def get_item(self, item_id: int) -> CatalogItem | None:
        """
        Return the current state of one posting, or None when it is gone.
        """

    @abstractmethod
    def query_new_active(self, limit: int) -> list[CatalogItem]:
        """
        Active postings from the lookback window that were never indexed successfully.
        """

    @abstractmethod
    def query_recently_updated_active(self, limit: int) -> list[CatalogItem]:
        """
        Active postings edited after publication within the update lookback.
        """

    @abstractmethod
    def query_orphaned_indexed(self, limit: int) -> list[OrphanCandidate]:
        """
        Indexed postings that are no longer active and were never removed.
        """
