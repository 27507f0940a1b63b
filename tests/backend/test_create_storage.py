import pytest

from caffeine_lib.config import FileConfig, MongoConfig, SqlConfig
from caffeine_lib.storage import FileStorageBackend, MemoryStorage, create_storage


def test_create_storage_memory():
    s = create_storage('memory')
    assert isinstance(s, MemoryStorage)
    s.init()
    s.upsert('ns', 'k', b'{}')
    assert s.get('ns', 'k') == b'{}'


def test_create_storage_file(tmp_path):
    s = create_storage('file', FileConfig(root_dir=str(tmp_path / 'data')))
    assert isinstance(s, FileStorageBackend)
    s.init()
    s.upsert('ns', 'k', b'[1]')
    assert (tmp_path / 'data' / 'ns' / 'k.json').read_bytes() == b'[1]'


def test_create_storage_sql(tmp_path):
    from caffeine_lib.storage.sql_backend import SqlStorageBackend

    s = create_storage('sql', SqlConfig(sqlite_path=str(tmp_path / 'c.db')))
    assert isinstance(s, SqlStorageBackend)
    assert s.url.startswith('sqlite:///')
    s.init()
    s.upsert('ns', 'k', b'1')
    assert s.get_namespaces() == ['ns']
    s.disconnect()


def test_create_storage_mongo_is_lazy():
    from caffeine_lib.storage.mongo_backend import MongoStorageBackend

    # no connection is attempted until init()
    s = create_storage('mongo', MongoConfig(database='other', host='nowhere.invalid'))
    assert isinstance(s, MongoStorageBackend)
    assert s.database_name == 'other'


def test_create_storage_unknown():
    with pytest.raises(ValueError):
        create_storage('cassandra')
