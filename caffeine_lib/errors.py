"""Error taxonomy shared by storage backends, the validation gate and the
change broker.

Every error carries a stable `code` string. The HTTP layer maps codes to
status classes, so callers must re-raise these types rather than wrapping
them in something generic.
"""
from __future__ import annotations
from typing import Iterable, List

ID_NOT_FOUND = "ID_NOT_FOUND"
NAMESPACE_NOT_FOUND = "NAMESPACE_NOT_FOUND"
FILESYSTEM_ERROR = "FILESYSTEM_ERROR"
DATABASE_ERROR = "DATABASE_ERROR"
MONGO_ERROR = "MONGO_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
DECODE_ERROR = "DECODE_ERROR"
INVALID_FILTER = "INVALID_FILTER"
BROKER_UNAVAILABLE = "BROKER_UNAVAILABLE"


class CaffeineError(Exception):
    code: str = "ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class StorageError(CaffeineError):
    """Base class for everything a storage backend may raise."""


class NotFoundRecord(StorageError, KeyError):
    code = ID_NOT_FOUND

    def __init__(self, namespace: str, key: str) -> None:
        super().__init__(f"value not found in namespace '{namespace}' for key '{key}'")
        self.namespace = namespace
        self.key = key


class NotFoundNamespace(StorageError, KeyError):
    code = NAMESPACE_NOT_FOUND

    def __init__(self, namespace: str) -> None:
        super().__init__(f"namespace '{namespace}' does not exist")
        self.namespace = namespace


class BackendFault(StorageError):
    """Medium-specific failure (disk, driver, connection).

    `code` is one of FILESYSTEM_ERROR, DATABASE_ERROR or MONGO_ERROR.
    """

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message, code)


class CorruptRecord(StorageError):
    """A stored record could not be decoded as JSON."""
    code = DECODE_ERROR

    def __init__(self, namespace: str, key: str, reason: str) -> None:
        super().__init__(f"record '{key}' in namespace '{namespace}' is not valid JSON: {reason}")
        self.namespace = namespace
        self.key = key


class ValidationFailure(CaffeineError):
    code = VALIDATION_ERROR

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = [str(e) for e in errors]
        super().__init__("; ".join(self.errors) or "invalid document")

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["errors"] = list(self.errors)
        return out


class InvalidFilter(CaffeineError):
    code = INVALID_FILTER


class BrokerUnavailable(CaffeineError):
    code = BROKER_UNAVAILABLE
