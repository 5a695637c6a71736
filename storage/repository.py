"""
In-memory keyed storage.

GOVERNANCE:
- No persistent storage (demo only)
- Records are copied in and out, so a failed write never leaks a half-applied change
"""

import logging
from functools import lru_cache
from typing import Any, Optional, TypeVar

from pydantic import BaseModel

from workflow.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# Collection name -> primary key attribute
COLLECTION_KEYS = {
    "workflows": "workflow_id",
    "sessions": "session_id",
    "reports": "report_id",
    "submissions": "submission_id",
    "reviewers": "reviewer_id",
    "regions": "region_id",
    "notifications": "notification_id",
}


class Repository:
    """Row-level create/read/update over named collections."""

    def __init__(self):
        self._collections: dict[str, dict[str, BaseModel]] = {
            name: {} for name in COLLECTION_KEYS
        }

    def _table(self, collection: str) -> dict[str, BaseModel]:
        table = self._collections.get(collection)
        if table is None:
            raise PersistenceError(
                f"Unknown collection '{collection}'", collection=collection
            )
        return table

    @staticmethod
    def _key(collection: str, record: BaseModel) -> str:
        return str(getattr(record, COLLECTION_KEYS[collection]))

    def create(self, collection: str, record: RecordT) -> RecordT:
        """Store a new record."""
        table = self._table(collection)
        key = self._key(collection, record)
        if key in table:
            raise PersistenceError(
                f"Record {key} already exists in '{collection}'",
                collection=collection,
                details={"key": key},
            )
        table[key] = record.model_copy(deep=True)
        logger.debug("Created %s/%s", collection, key)
        return record

    def get(self, collection: str, key: str) -> Optional[BaseModel]:
        """Retrieve a record by key."""
        record = self._table(collection).get(key)
        return record.model_copy(deep=True) if record is not None else None

    def require(self, collection: str, key: str) -> Any:
        """Retrieve a record by key, raising when it no longer exists."""
        record = self.get(collection, key)
        if record is None:
            raise NotFoundError(
                f"{collection[:-1].capitalize()} {key} not found",
                collection=collection,
                key=key,
            )
        return record

    def update(self, collection: str, record: RecordT) -> RecordT:
        """Update an existing record."""
        table = self._table(collection)
        key = self._key(collection, record)
        if key not in table:
            raise NotFoundError(
                f"{collection[:-1].capitalize()} {key} not found",
                collection=collection,
                key=key,
            )
        table[key] = record.model_copy(deep=True)
        logger.debug("Updated %s/%s", collection, key)
        return record

    def restore(self, collection: str, record: BaseModel) -> bool:
        """
        Put back a record's earlier state after a later write failed.

        Returns False when the restore itself could not be written; the
        caller re-raises the original failure either way.
        """
        try:
            self.update(collection, record)
        except PersistenceError as exc:
            logger.error(
                "Could not restore %s/%s: %s",
                collection,
                self._key(collection, record),
                exc.message,
            )
            return False
        return True

    def list(self, collection: str, **filters: Any) -> list[Any]:
        """List records whose attributes equal every given filter."""
        return [
            record.model_copy(deep=True)
            for record in self._table(collection).values()
            if all(getattr(record, name) == value for name, value in filters.items())
        ]

    def count_by(self, collection: str, field: str) -> dict[str, int]:
        """Count records grouped by a field value."""
        counts: dict[str, int] = {}
        for record in self._table(collection).values():
            value = getattr(record, field)
            label = getattr(value, "value", value)
            counts[str(label)] = counts.get(str(label), 0) + 1
        return counts


@lru_cache
def get_storage() -> Repository:
    """Get the process-wide, seeded storage instance."""
    from config import get_settings
    from storage.seed import seed_defaults

    repository = Repository()
    seed_defaults(repository, get_settings())
    return repository
