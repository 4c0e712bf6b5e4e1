"""
app/api/routers package marker.
"""

from app.api.routers.indexing_router import router as indexing_router

__all__ = [
    "indexing_router",
]
