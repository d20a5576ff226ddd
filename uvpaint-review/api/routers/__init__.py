"""Router package for the rendition review API."""

from . import health, proxy, review, votes  # noqa: F401

__all__ = ["health", "proxy", "review", "votes"]
