"""Storage module."""

from storage.sqlite import SQLiteFeedStore

__all__ = ["SQLiteFeedStore"]
