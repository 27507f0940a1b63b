"""Document-store backend on MongoDB (pymongo).

Every namespace is a collection in the configured database and every record
a document `{_id: <key>, value: <binary payload>}`. Namespace existence is
recorded in a registry collection, so a namespace outlives its last record
until `delete_all` removes it.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from bson.binary import Binary
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from caffeine_lib.errors import (
    MONGO_ERROR,
    BackendFault,
    NotFoundNamespace,
    NotFoundRecord,
)
from .base import StorageBackend

logger = logging.getLogger(__name__)

REGISTRY = "_caffeine_namespaces"


def _fault(exc: Exception) -> BackendFault:
    return BackendFault(str(exc), MONGO_ERROR)


class MongoStorageBackend(StorageBackend):
    name = "mongo"

    def __init__(
        self,
        database: str = "caffeine",
        client_factory=None,
        **client_options: Any,
    ) -> None:
        """`client_factory` defaults to `pymongo.MongoClient`; `client_options`
        are passed to it verbatim (host, port, username, ...)."""
        self.database_name = database
        self._client_factory = client_factory or MongoClient
        self._client_options = client_options
        self._client: Optional[Any] = None
        self._db: Optional[Database] = None

    @property
    def db(self) -> Database:
        if self._db is None:
            raise BackendFault("mongo backend used before init()", MONGO_ERROR)
        return self._db

    def init(self) -> None:
        try:
            client = self._client_factory(**self._client_options)
            client.admin.command("ping")
        except PyMongoError as exc:
            raise _fault(exc) from exc
        self._client = client
        self._db = client[self.database_name]
        logger.info("Mongo storage connected to database %s", self.database_name)

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    @property
    def registry(self):
        return self.db[REGISTRY]

    def _exists(self, namespace: str) -> bool:
        return self.registry.find_one({"_id": namespace}) is not None

    def upsert(self, namespace: str, key: str, value: bytes) -> None:
        if namespace == REGISTRY:
            raise BackendFault(f"namespace name {namespace!r} is reserved", MONGO_ERROR)
        try:
            self.registry.replace_one({"_id": namespace}, {"_id": namespace}, upsert=True)
            self.db[namespace].replace_one(
                {"_id": key}, {"_id": key, "value": Binary(bytes(value))}, upsert=True
            )
        except PyMongoError as exc:
            raise _fault(exc) from exc

    def get(self, namespace: str, key: str) -> bytes:
        try:
            doc = self.db[namespace].find_one({"_id": key})
            if doc is not None:
                return bytes(doc["value"])
            if not self._exists(namespace):
                raise NotFoundNamespace(namespace)
        except PyMongoError as exc:
            raise _fault(exc) from exc
        raise NotFoundRecord(namespace, key)

    def get_all(self, namespace: str) -> Dict[str, bytes]:
        try:
            if not self._exists(namespace):
                raise NotFoundNamespace(namespace)
            return {doc["_id"]: bytes(doc["value"]) for doc in self.db[namespace].find({})}
        except PyMongoError as exc:
            raise _fault(exc) from exc

    def delete(self, namespace: str, key: str) -> None:
        try:
            res = self.db[namespace].delete_one({"_id": key})
            if res.deleted_count:
                return
            if not self._exists(namespace):
                raise NotFoundNamespace(namespace)
        except PyMongoError as exc:
            raise _fault(exc) from exc
        raise NotFoundRecord(namespace, key)

    def delete_all(self, namespace: str) -> None:
        try:
            if not self._exists(namespace):
                raise NotFoundNamespace(namespace)
            self.db.drop_collection(namespace)
            self.registry.delete_one({"_id": namespace})
        except PyMongoError as exc:
            raise _fault(exc) from exc

    def get_namespaces(self) -> List[str]:
        try:
            names = [doc["_id"] for doc in self.registry.find({})]
        except (PyMongoError, BackendFault):
            logger.exception("Failed to list namespaces")
            return []
        return sorted(names)
