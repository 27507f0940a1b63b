"""Storage backend interface definitions.

Defines the StorageBackend abstract class every medium (memory,
filesystem, relational, document store) implements. Records are opaque
bytes stored under a two-level (namespace, key) address; backends never
interpret the payload.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, List


class StorageBackend(ABC):
    """Abstract storage backend.

    Implementations must be safe to call from many request threads at
    once and must translate native failures into the types defined in
    `caffeine_lib.errors`:

    - `NotFoundRecord` when the key is absent from an existing namespace
    - `NotFoundNamespace` when the namespace itself does not exist
    - `BackendFault` for anything the medium reports

    A namespace is created implicitly by the first `upsert` and survives
    until `delete_all`, even if its last key is deleted.
    """

    #: short name used in logs and the health endpoint
    name: str = "abstract"

    @abstractmethod
    def init(self) -> None:
        """Provision backend resources (directories, pools, tables).

        Raises `BackendFault` when provisioning fails. Callers treat this
        as fatal at startup.
        """

    def disconnect(self) -> None:
        """Release resources. Default is a no-op for resource-less backends."""
        return None

    @abstractmethod
    def upsert(self, namespace: str, key: str, value: bytes) -> None:
        """Write `value` verbatim under `namespace`/`key`.

        Creates the namespace if needed and fully replaces any previous
        value. On failure the previous value must be left intact.
        """

    @abstractmethod
    def get(self, namespace: str, key: str) -> bytes:
        """Return the bytes stored under `namespace`/`key`."""

    @abstractmethod
    def get_all(self, namespace: str) -> Dict[str, bytes]:
        """Return a snapshot of every record in `namespace`. Key order is unspecified."""

    @abstractmethod
    def delete(self, namespace: str, key: str) -> None:
        """Remove a single record."""

    @abstractmethod
    def delete_all(self, namespace: str) -> None:
        """Remove the namespace and all its records.

        Raises `NotFoundNamespace` when the namespace does not exist.
        """

    @abstractmethod
    def get_namespaces(self) -> List[str]:
        """Return the sorted namespace names. Never raises; returns [] on failure."""
