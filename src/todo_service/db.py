from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, List, Mapping, Optional

import pymongo
from bson import ObjectId
from bson.errors import BSONError
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .errors import ConfigError, StoreError
from .models import TodoRecord
from .repositories import TodoStore, check_update_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Keys:
    id: str = "_id"
    title: str = "title"
    completed: str = "completed"
    created_at: str = "createAt"


_KEYS = _Keys()


class MongoTodoStore(TodoStore):
    """
    MongoDB store implementing the TodoStore interface.

    Every operation runs under its own pymongo timeout; driver failures,
    timeouts included, are raised as StoreError.
    """

    def __init__(
        self,
        collection: Collection,
        timeout_seconds: float = 5.0,
        client: Optional[MongoClient] = None,
    ) -> None:
        self._collection = collection
        self._timeout = timeout_seconds
        self._client = client

    @classmethod
    def connect(
        cls,
        uri: str,
        database: str = "demo_todo",
        collection: str = "todo",
        timeout_seconds: float = 5.0,
    ) -> "MongoTodoStore":
        """
        Create a client for the given connection string and select the collection.
        The driver connects lazily, so an unreachable server surfaces on first use.
        """
        try:
            client: MongoClient = MongoClient(
                uri,
                tz_aware=True,
                serverSelectionTimeoutMS=int(timeout_seconds * 1000),
            )
        except PyMongoError as e:
            raise ConfigError(f"Invalid MONGO_URI: {e}") from e
        logger.info("Using MongoDB collection %s.%s", database, collection)
        return cls(client[database][collection], timeout_seconds, client=client)

    @contextmanager
    def _operation(self, failure_message: str) -> Generator[None, None, None]:
        try:
            with pymongo.timeout(self._timeout):
                yield
        except (PyMongoError, BSONError) as e:
            logger.error("%s: %s", failure_message, e)
            raise StoreError(failure_message, error=str(e)) from e

    def _doc_to_record(self, doc: Mapping[str, Any]) -> TodoRecord:
        try:
            return TodoRecord(
                id=doc[_KEYS.id],
                title=str(doc[_KEYS.title]),
                completed=bool(doc.get(_KEYS.completed, False)),
                created_at=doc[_KEYS.created_at],
            )
        except KeyError as e:
            logger.error("Failed to decode todo document %s: missing %s", doc.get(_KEYS.id), e)
            raise StoreError("Failed to decode todos", error=f"missing field {e}") from e

    def find_all(self) -> List[TodoRecord]:
        with self._operation("Failed to fetch todo"):
            docs = list(self._collection.find({}))
        return [self._doc_to_record(d) for d in docs]

    def insert(self, record: TodoRecord) -> ObjectId:
        doc = {
            _KEYS.title: record.title,
            _KEYS.completed: record.completed,
            _KEYS.created_at: record.created_at,
        }
        if record.id is not None:
            doc[_KEYS.id] = record.id
        with self._operation("Failed to save todo"):
            result = self._collection.insert_one(doc)
        return result.inserted_id

    def delete_by_id(self, todo_id: ObjectId) -> int:
        with self._operation("Failed to delete todo"):
            result = self._collection.delete_one({_KEYS.id: todo_id})
        return result.deleted_count

    def update_by_id(self, todo_id: ObjectId, fields: Mapping[str, Any]) -> int:
        changes = {getattr(_KEYS, k): v for k, v in check_update_fields(fields).items()}
        with self._operation("Failed to update todo"):
            result = self._collection.update_one({_KEYS.id: todo_id}, {"$set": changes})
        return result.matched_count

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
