from typing import Dict, List, Protocol, runtime_checkable


@runtime_checkable
class StorageProtocol(Protocol):
    """Storage backend protocol mirroring `caffeine_lib.storage.StorageBackend`.

    Test doubles and alternative backends only need to follow this shape;
    semantics are documented on the abstract base class in
    `caffeine_lib.storage.base`.
    """

    def init(self) -> None: ...

    def disconnect(self) -> None: ...

    def upsert(self, namespace: str, key: str, value: bytes) -> None: ...

    def get(self, namespace: str, key: str) -> bytes: ...

    def get_all(self, namespace: str) -> Dict[str, bytes]: ...

    def delete(self, namespace: str, key: str) -> None: ...

    def delete_all(self, namespace: str) -> None: ...

    def get_namespaces(self) -> List[str]: ...
