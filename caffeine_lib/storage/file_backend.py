"""Filesystem storage backend.

Each namespace is a directory under `root_dir` and each record a
`<key>.json` file inside it; a namespace exists exactly when its directory
does. Writes go to a uniquely named temporary file which is fsynced and
then renamed over the target, so readers never observe a truncated record.
"""
from __future__ import annotations
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Dict, List

from caffeine_lib.errors import (
    FILESYSTEM_ERROR,
    BackendFault,
    NotFoundNamespace,
    NotFoundRecord,
)
from .base import StorageBackend

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


def _fault(exc: OSError) -> BackendFault:
    return BackendFault(str(exc), FILESYSTEM_ERROR)


class FileStorageBackend(StorageBackend):
    name = "file"

    def __init__(self, root_dir: str | Path = "./data") -> None:
        self.root_dir = Path(root_dir)

    def init(self) -> None:
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise _fault(exc) from exc
        logger.info("File storage rooted at %s", self.root_dir.resolve())

    def _ns_dir(self, namespace: str) -> Path:
        if not namespace or namespace.startswith(".") or "/" in namespace or "\\" in namespace:
            raise BackendFault(f"invalid namespace name {namespace!r}", FILESYSTEM_ERROR)
        return self.root_dir / namespace

    def _path_for(self, namespace: str, key: str) -> Path:
        if not key or key.startswith(".") or "/" in key or "\\" in key:
            raise BackendFault(f"invalid key {key!r}", FILESYSTEM_ERROR)
        return self._ns_dir(namespace) / f"{key}{RECORD_SUFFIX}"

    def upsert(self, namespace: str, key: str, value: bytes) -> None:
        path = self._path_for(namespace, key)
        # unique temp name so concurrent writers to one key never share a file
        tmp = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as exc:
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning("Could not remove temporary file %s", tmp)
            raise _fault(exc) from exc

    def get(self, namespace: str, key: str) -> bytes:
        path = self._path_for(namespace, key)
        if not path.parent.is_dir():
            raise NotFoundNamespace(namespace)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise NotFoundRecord(namespace, key)
        except OSError as exc:
            raise _fault(exc) from exc

    def get_all(self, namespace: str) -> Dict[str, bytes]:
        ns = self._ns_dir(namespace)
        if not ns.is_dir():
            raise NotFoundNamespace(namespace)
        result: Dict[str, bytes] = {}
        try:
            entries = list(ns.iterdir())
        except FileNotFoundError:
            raise NotFoundNamespace(namespace)
        except OSError as exc:
            raise _fault(exc) from exc
        for p in entries:
            if p.suffix != RECORD_SUFFIX or not p.is_file():
                continue
            try:
                result[p.stem] = p.read_bytes()
            except FileNotFoundError:
                # deleted after the directory listing; not part of the snapshot
                continue
            except OSError as exc:
                raise _fault(exc) from exc
        return result

    def delete(self, namespace: str, key: str) -> None:
        path = self._path_for(namespace, key)
        if not path.parent.is_dir():
            raise NotFoundNamespace(namespace)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundRecord(namespace, key)
        except OSError as exc:
            raise _fault(exc) from exc

    def delete_all(self, namespace: str) -> None:
        ns = self._ns_dir(namespace)
        if not ns.is_dir():
            raise NotFoundNamespace(namespace)
        try:
            shutil.rmtree(ns)
        except FileNotFoundError:
            raise NotFoundNamespace(namespace)
        except OSError as exc:
            raise _fault(exc) from exc

    def get_namespaces(self) -> List[str]:
        try:
            return sorted(p.name for p in self.root_dir.iterdir() if p.is_dir())
        except OSError:
            logger.exception("Failed to list namespaces under %s", self.root_dir)
            return []
