"""Storage layer."""

from storage.repository import COLLECTION_KEYS, Repository, get_storage

__all__ = ["COLLECTION_KEYS", "Repository", "get_storage"]
