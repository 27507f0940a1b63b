"""Request-facing document operations.

`DocumentService` is the only place that combines the storage backend, the
validation gate and the change broker: a write is validated, stored and
only then announced. Reads go straight to storage.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from caffeine_lib.broker import ChangeBroker, ChangeEvent
from caffeine_lib.errors import BrokerUnavailable, NotFoundNamespace, NotFoundRecord
from caffeine_lib.storage.interfaces import StorageProtocol
from . import schema as schema_store
from .payload import wrap
from .search import FilterProgram, JqFilter, decode_snapshot, search
from .validation import check_schema, validate_document

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(
        self,
        storage: StorageProtocol,
        broker: Optional[ChangeBroker] = None,
        auth_enabled: bool = False,
    ) -> None:
        self.storage = storage
        self.broker = broker
        self.auth_enabled = auth_enabled

    def _notify(self, event: ChangeEvent) -> None:
        if self.broker is None:
            return
        try:
            self.broker.publish(event)
        except BrokerUnavailable as e:
            # the write already succeeded; losing the notification is acceptable
            logger.warning("Change event for %s/%s not published: %s", event.namespace, event.key, e)

    # namespaces

    def list_namespaces(self) -> List[str]:
        return self.storage.get_namespaces()

    def get_namespace(self, namespace: str) -> Dict[str, Any]:
        return decode_snapshot(namespace, self.storage.get_all(namespace))

    def delete_namespace(self, namespace: str, user: Optional[str] = None) -> None:
        self.storage.delete_all(namespace)
        logger.info("Deleted namespace '%s'", namespace)
        self._notify(ChangeEvent.namespace_deleted(namespace, user))

    # records

    def put_item(self, namespace: str, key: str, raw: bytes, user: Optional[str] = None) -> bytes:
        """Validate and store `raw`; returns the bytes actually stored."""
        document = validate_document(schema_store.load_schema(self.storage, namespace), raw)
        stored = wrap(user, document) if self.auth_enabled else bytes(raw)
        self.storage.upsert(namespace, key, stored)
        logger.debug("Stored %s/%s (%d bytes)", namespace, key, len(stored))
        self._notify(ChangeEvent.item_added(namespace, key, document, user))
        return stored

    def get_item(self, namespace: str, key: str) -> bytes:
        return self.storage.get(namespace, key)

    def delete_item(self, namespace: str, key: str, user: Optional[str] = None) -> None:
        self.storage.delete(namespace, key)
        self._notify(ChangeEvent.item_deleted(namespace, key, user))

    # schemas

    def get_schema(self, namespace: str) -> bytes:
        raw = schema_store.load_schema(self.storage, namespace)
        if raw is None:
            raise NotFoundRecord(schema_store.schema_namespace(namespace), schema_store.SCHEMA_ID)
        return raw

    def put_schema(self, namespace: str, raw: bytes) -> bytes:
        check_schema(raw)
        schema_store.save_schema(self.storage, namespace, bytes(raw))
        logger.info("added schema for namespace '%s'", namespace)
        return bytes(raw)

    def delete_schema(self, namespace: str) -> None:
        try:
            schema_store.delete_schema(self.storage, namespace)
        except NotFoundNamespace:
            raise NotFoundRecord(schema_store.schema_namespace(namespace), schema_store.SCHEMA_ID)
        logger.info("removed schema for namespace '%s'", namespace)

    # search

    def search(self, namespace: str, program: FilterProgram | str) -> List[Dict[str, Any]]:
        if isinstance(program, str):
            program = JqFilter(program)
        return search(self.storage, namespace, program)
