from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from threading import RLock
from typing import Any, Dict, List, Mapping

from bson import ObjectId

from .models import TodoRecord
from .settings import Settings

logger = logging.getLogger(__name__)

# Fields a caller may change after creation; id and created_at are immutable.
UPDATABLE_FIELDS = frozenset({"title", "completed"})


def check_update_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"cannot update fields: {sorted(unknown)}")
    return dict(fields)


# PUBLIC_INTERFACE
class TodoStore(ABC):
    """Abstract contract for todo document storage backends."""

    @abstractmethod
    def find_all(self) -> List[TodoRecord]:
        """Return every stored record. No ordering guarantee."""

    @abstractmethod
    def insert(self, record: TodoRecord) -> ObjectId:
        """Persist a new record and return its identifier."""

    @abstractmethod
    def delete_by_id(self, todo_id: ObjectId) -> int:
        """Delete the record with the given id. Return the number of records removed."""

    @abstractmethod
    def update_by_id(self, todo_id: ObjectId, fields: Mapping[str, Any]) -> int:
        """
        Apply a partial update of title and/or completed.
        Return the number of matched records; a miss is not an error.
        """

    def close(self) -> None:
        """Release any underlying resources."""


class InMemoryTodoStore(TodoStore):
    """
    Thread-safe in-memory store suitable for testing and local runs without MongoDB.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[ObjectId, TodoRecord] = {}

    def find_all(self) -> List[TodoRecord]:
        with self._lock:
            return list(self._items.values())

    def insert(self, record: TodoRecord) -> ObjectId:
        todo_id = record.id if record.id is not None else ObjectId()
        with self._lock:
            self._items[todo_id] = record.with_id(todo_id)
        return todo_id

    def delete_by_id(self, todo_id: ObjectId) -> int:
        with self._lock:
            return 0 if self._items.pop(todo_id, None) is None else 1

    def update_by_id(self, todo_id: ObjectId, fields: Mapping[str, Any]) -> int:
        changes = check_update_fields(fields)
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return 0
            self._items[todo_id] = replace(existing, **changes)
            return 1


# PUBLIC_INTERFACE
def get_store(settings: Settings) -> TodoStore:
    """
    Factory to return the configured store based on settings.
    - mongo: MongoTodoStore connected to MONGO_URI
    - memory: InMemoryTodoStore
    """
    if settings.store_backend == "memory":
        logger.info("Using in-memory todo store")
        return InMemoryTodoStore()

    from .db import MongoTodoStore

    return MongoTodoStore.connect(
        settings.mongo_uri or "",
        database=settings.mongo_database,
        collection=settings.mongo_collection,
        timeout_seconds=settings.store_timeout_seconds,
    )
