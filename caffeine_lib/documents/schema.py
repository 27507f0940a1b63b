"""Namespace schema convention.

The JSON schema for namespace `users` is stored as an ordinary record in
the derived namespace `users_schema` under the sentinel key `_schema`.
Backends need no special support; a missing record means "no schema".
"""
from typing import Optional

from caffeine_lib.errors import NotFoundNamespace, NotFoundRecord
from caffeine_lib.storage.interfaces import StorageProtocol

SCHEMA_ID = "_schema"


def schema_namespace(namespace: str) -> str:
    return namespace + SCHEMA_ID


def is_schema_namespace(namespace: str) -> bool:
    return namespace.endswith(SCHEMA_ID)


def load_schema(storage: StorageProtocol, namespace: str) -> Optional[bytes]:
    """Return the raw schema registered for `namespace`, or None.

    Backend faults propagate; only the two not-found kinds mean absence.
    """
    try:
        return storage.get(schema_namespace(namespace), SCHEMA_ID)
    except (NotFoundRecord, NotFoundNamespace):
        return None


def save_schema(storage: StorageProtocol, namespace: str, schema: bytes) -> None:
    storage.upsert(schema_namespace(namespace), SCHEMA_ID, schema)


def delete_schema(storage: StorageProtocol, namespace: str) -> None:
    storage.delete(schema_namespace(namespace), SCHEMA_ID)
