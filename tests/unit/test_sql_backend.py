import pytest
from sqlalchemy import select

from caffeine_lib.errors import DATABASE_ERROR, BackendFault
from caffeine_lib.storage.sql_backend import SqlStorageBackend, namespaces_table, records_table


def _backend(tmp_path):
    b = SqlStorageBackend(url=f"sqlite:///{(tmp_path / 'db.sqlite').as_posix()}")
    b.init()
    return b


def test_rows_are_keyed_by_namespace_and_key(tmp_path):
    b = _backend(tmp_path)
    b.upsert('users', '1', b'{"a":1}')
    b.upsert('users', '1', b'{"a":2}')
    with b.engine.connect() as conn:
        rows = conn.execute(select(records_table)).all()
        names = conn.execute(select(namespaces_table.c.name)).scalars().all()
    assert [(r[0], r[1], bytes(r[2])) for r in rows] == [('users', '1', b'{"a":2}')]
    assert names == ['users']
    b.disconnect()


def test_data_survives_reconnect(tmp_path):
    b = _backend(tmp_path)
    b.upsert('users', '1', b'{}')
    b.disconnect()
    b2 = _backend(tmp_path)
    assert b2.get('users', '1') == b'{}'
    b2.disconnect()


def test_use_before_init_is_backend_fault(tmp_path):
    b = SqlStorageBackend(url='sqlite:///:memory:')
    with pytest.raises(BackendFault) as ei:
        b.get('ns', 'k')
    assert ei.value.code == DATABASE_ERROR
    assert b.get_namespaces() == []


def test_unreachable_database_fails_init(tmp_path):
    missing_dir = tmp_path / 'nope' / 'db.sqlite'
    b = SqlStorageBackend(url=f"sqlite:///{missing_dir.as_posix()}")
    with pytest.raises(BackendFault) as ei:
        b.init()
    assert ei.value.code == DATABASE_ERROR
