"""Storage abstraction package for Caffeine."""
from __future__ import annotations
from typing import Any, Optional

from .base import StorageBackend
from .file_backend import FileStorageBackend
from .interfaces import StorageProtocol
from .memory_backend import MemoryStorage


def create_storage(backend: str = "file", config: Optional[Any] = None) -> StorageBackend:
    """Build (but do not `init`) the storage backend named `backend`.

    `config` is the matching backend config dataclass from
    `caffeine_lib.config`; defaults are used when omitted. The relational
    and document-store backends are imported lazily so their drivers are
    only required when selected.
    """
    from caffeine_lib.config import FileConfig, MongoConfig, SqlConfig

    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        cfg = config or FileConfig()
        return FileStorageBackend(root_dir=cfg.root_dir)
    if backend == "sql":
        from .sql_backend import SqlStorageBackend

        cfg = config or SqlConfig()
        return SqlStorageBackend(url=cfg.build_url())
    if backend == "mongo":
        from .mongo_backend import MongoStorageBackend

        cfg = config or MongoConfig()
        return MongoStorageBackend(database=cfg.database, **cfg.client_options())
    raise ValueError(f"unknown storage backend '{backend}'")


__all__ = [
    "StorageBackend",
    "StorageProtocol",
    "FileStorageBackend",
    "MemoryStorage",
    "create_storage",
]
