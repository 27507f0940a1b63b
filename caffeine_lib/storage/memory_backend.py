"""Simple memory-backed storage backend

Records live in a dict of dicts `[<namespace>][<key>] -> bytes` guarded by
one process-wide lock. Data is volatile and lost on restart.
"""
from threading import RLock
from typing import Dict, List

from caffeine_lib.errors import NotFoundNamespace, NotFoundRecord
from .base import StorageBackend


class MemoryStorage(StorageBackend):
    name = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._store: Dict[str, Dict[str, bytes]] = {}

    def init(self) -> None:
        return None

    def upsert(self, namespace: str, key: str, value: bytes) -> None:
        with self._lock:
            self._store.setdefault(namespace, {})[key] = bytes(value)

    def get(self, namespace: str, key: str) -> bytes:
        with self._lock:
            ns = self._store.get(namespace)
            if ns is None:
                raise NotFoundNamespace(namespace)
            if key not in ns:
                raise NotFoundRecord(namespace, key)
            return ns[key]

    def get_all(self, namespace: str) -> Dict[str, bytes]:
        with self._lock:
            ns = self._store.get(namespace)
            if ns is None:
                raise NotFoundNamespace(namespace)
            # copy so callers iterate a stable snapshot
            return dict(ns)

    def delete(self, namespace: str, key: str) -> None:
        with self._lock:
            ns = self._store.get(namespace)
            if ns is None:
                raise NotFoundNamespace(namespace)
            if key not in ns:
                raise NotFoundRecord(namespace, key)
            del ns[key]

    def delete_all(self, namespace: str) -> None:
        with self._lock:
            if namespace not in self._store:
                raise NotFoundNamespace(namespace)
            del self._store[namespace]

    def get_namespaces(self) -> List[str]:
        with self._lock:
            return sorted(self._store.keys())
