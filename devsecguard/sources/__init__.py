"""Repository content sources."""

from .base import (
    AuthenticationError,
    ContentSource,
    ContentSourceError,
    NotFoundError,
    RateLimitedError,
    TreeEntry,
)

__all__ = [
    "AuthenticationError",
    "ContentSource",
    "ContentSourceError",
    "NotFoundError",
    "RateLimitedError",
    "TreeEntry",
]
