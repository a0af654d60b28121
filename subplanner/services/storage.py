import logging
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from subplanner.models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Key-value blob store the subscription store persists into."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryStorage:
    """Dictionary-backed storage, used for tests and throwaway stores."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.write_count += 1


class DatabaseStorage:
    """Storage backed by the ``storage_entries`` table."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, key: str) -> Optional[str]:
        entry = self._db.query(StorageEntry).filter(StorageEntry.key == key).first()
        if entry is None:
            return None
        return entry.value

    def set(self, key: str, value: str) -> None:
        entry = self._db.query(StorageEntry).filter(StorageEntry.key == key).first()
        if entry is None:
            entry = StorageEntry(key=key, value=value)
            self._db.add(entry)
        else:
            entry.value = value

        self._db.commit()
        logger.debug(f"Stored {len(value)} bytes under {key}")
