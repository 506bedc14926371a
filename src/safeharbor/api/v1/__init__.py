"""Version 1 API endpoints."""

from .endpoints import moderation_router

__all__ = [
    "moderation_router",
]
