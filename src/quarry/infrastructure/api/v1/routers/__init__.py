"""API v1 routers."""

from .collections import create_collection_router

__all__ = [
    "create_collection_router",
]
