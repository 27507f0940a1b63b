"""Substructure search over a namespace snapshot.

The query language is not implemented here: a filter program is anything
that maps one decoded document to zero or more projected JSON values. The
default adapter compiles jq expressions with the `jq` bindings.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Protocol, runtime_checkable

import jq

from caffeine_lib.errors import CorruptRecord, InvalidFilter
from caffeine_lib.storage.interfaces import StorageProtocol
from .payload import decode

logger = logging.getLogger(__name__)


@runtime_checkable
class FilterProgram(Protocol):
    def run(self, document: Any) -> Iterable[Any]: ...


class JqFilter:
    """A compiled jq expression."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        try:
            self._program = jq.compile(expression)
        except ValueError as e:
            logger.info("Rejected filter %r: %s", expression, e)
            raise InvalidFilter(f"cannot parse filter: {e}") from e

    def run(self, document: Any) -> List[Any]:
        try:
            return self._program.input_value(document).all()
        except ValueError as e:
            logger.info("Filter %r failed: %s", self.expression, e)
            raise InvalidFilter(f"filter failed: {e}") from e


def decode_snapshot(namespace: str, snapshot: Dict[str, bytes]) -> Dict[str, Any]:
    """Decode every record of a `get_all` snapshot; any bad record fails the whole read."""
    out: Dict[str, Any] = {}
    for key, raw in snapshot.items():
        try:
            out[key] = decode(raw)
        except ValueError as e:
            raise CorruptRecord(namespace, key, str(e)) from e
    return out


def search(storage: StorageProtocol, namespace: str, program: FilterProgram) -> List[Dict[str, Any]]:
    """Run `program` over every document in `namespace`.

    Returns one `{"key", "value"}` entry per projected result, keys in
    sorted order.
    """
    documents = decode_snapshot(namespace, storage.get_all(namespace))
    results: List[Dict[str, Any]] = []
    for key in sorted(documents):
        for value in program.run(documents[key]):
            results.append({"key": key, "value": value})
    return results
