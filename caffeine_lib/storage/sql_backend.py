"""Relational storage backend on SQLAlchemy Core.

Two tables hold everything: `caffeine_namespaces` records which namespaces
exist and `caffeine_records` holds one row per (namespace, key). Each
namespace is therefore a logical table keyed by the record key. Works with
SQLite (the default, file based) and PostgreSQL; conflicting writes rely on
the engine's own transaction isolation.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Column,
    Engine,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    event,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError

from caffeine_lib.errors import (
    DATABASE_ERROR,
    BackendFault,
    NotFoundNamespace,
    NotFoundRecord,
)
from .base import StorageBackend

logger = logging.getLogger(__name__)

metadata = MetaData()

namespaces_table = Table(
    "caffeine_namespaces",
    metadata,
    Column("name", String(255), primary_key=True),
)

records_table = Table(
    "caffeine_records",
    metadata,
    Column("namespace", String(255), primary_key=True),
    Column("key", String(255), primary_key=True),
    Column("value", LargeBinary, nullable=False),
)


def _fault(exc: Exception) -> BackendFault:
    return BackendFault(str(exc), DATABASE_ERROR)


class SqlStorageBackend(StorageBackend):
    name = "sql"

    def __init__(self, url: str, engine_options: Optional[Dict[str, Any]] = None) -> None:
        self.url = url
        self._engine_options = dict(engine_options or {})
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise BackendFault("sql backend used before init()", DATABASE_ERROR)
        return self._engine

    def init(self) -> None:
        options = dict(self._engine_options)
        options.setdefault("pool_pre_ping", True)
        is_sqlite = self.url.startswith("sqlite")
        if is_sqlite:
            options.setdefault("connect_args", {"check_same_thread": False, "timeout": 30})
        try:
            engine = create_engine(self.url, **options)
            if is_sqlite:
                @event.listens_for(engine, "connect")
                def _on_connect(dbapi_conn, conn_record):
                    cur = dbapi_conn.cursor()
                    cur.execute("PRAGMA journal_mode=WAL;")
                    cur.execute("PRAGMA busy_timeout=30000;")
                    cur.close()
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise _fault(exc) from exc
        self._engine = engine
        logger.info("SQL storage connected (%s)", engine.url.render_as_string(hide_password=True))

    def disconnect(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def _namespace_exists(self, conn, namespace: str) -> bool:
        row = conn.execute(
            select(namespaces_table.c.name).where(namespaces_table.c.name == namespace)
        ).first()
        return row is not None

    def _insert(
        self,
        conn,
        table: Table,
        values: Dict[str, Any],
        conflict: List[str],
        update_cols: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Insert a row, on conflict either ignore it or update `update_cols`."""
        dialect = conn.dialect.name
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        elif dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        else:
            dialect_insert = None

        if dialect_insert is not None:
            stmt = dialect_insert(table).values(**values)
            if update_cols:
                stmt = stmt.on_conflict_do_update(index_elements=conflict, set_=update_cols)
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=conflict)
            conn.execute(stmt)
            return

        # portable fallback: look first, then write
        where = [table.c[c] == values[c] for c in conflict]
        found = conn.execute(select(*[table.c[c] for c in conflict]).where(*where)).first()
        if found is None:
            conn.execute(insert(table).values(**values))
        elif update_cols:
            conn.execute(update(table).where(*where).values(**update_cols))

    def upsert(self, namespace: str, key: str, value: bytes) -> None:
        try:
            with self.engine.begin() as conn:
                self._insert(conn, namespaces_table, {"name": namespace}, ["name"])
                self._insert(
                    conn,
                    records_table,
                    {"namespace": namespace, "key": key, "value": bytes(value)},
                    ["namespace", "key"],
                    update_cols={"value": bytes(value)},
                )
        except SQLAlchemyError as exc:
            raise _fault(exc) from exc

    def get(self, namespace: str, key: str) -> bytes:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(records_table.c["value"]).where(
                        (records_table.c.namespace == namespace) & (records_table.c["key"] == key)
                    )
                ).first()
                if row is not None:
                    return bytes(row[0])
                if not self._namespace_exists(conn, namespace):
                    raise NotFoundNamespace(namespace)
                raise NotFoundRecord(namespace, key)
        except SQLAlchemyError as exc:
            raise _fault(exc) from exc

    def get_all(self, namespace: str) -> Dict[str, bytes]:
        try:
            with self.engine.begin() as conn:
                if not self._namespace_exists(conn, namespace):
                    raise NotFoundNamespace(namespace)
                rows = conn.execute(
                    select(records_table.c["key"], records_table.c["value"]).where(
                        records_table.c.namespace == namespace
                    )
                ).all()
        except SQLAlchemyError as exc:
            raise _fault(exc) from exc
        return {k: bytes(v) for k, v in rows}

    def delete(self, namespace: str, key: str) -> None:
        try:
            with self.engine.begin() as conn:
                res = conn.execute(
                    delete(records_table).where(
                        (records_table.c.namespace == namespace) & (records_table.c["key"] == key)
                    )
                )
                if res.rowcount:
                    return
                if not self._namespace_exists(conn, namespace):
                    raise NotFoundNamespace(namespace)
                raise NotFoundRecord(namespace, key)
        except SQLAlchemyError as exc:
            raise _fault(exc) from exc

    def delete_all(self, namespace: str) -> None:
        try:
            with self.engine.begin() as conn:
                res = conn.execute(delete(namespaces_table).where(namespaces_table.c.name == namespace))
                if not res.rowcount:
                    raise NotFoundNamespace(namespace)
                conn.execute(delete(records_table).where(records_table.c.namespace == namespace))
        except SQLAlchemyError as exc:
            raise _fault(exc) from exc

    def get_namespaces(self) -> List[str]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(namespaces_table.c.name).order_by(namespaces_table.c.name)).all()
        except (SQLAlchemyError, BackendFault):
            logger.exception("Failed to list namespaces")
            return []
        return [r[0] for r in rows]
