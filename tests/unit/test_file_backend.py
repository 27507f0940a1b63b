import os

import pytest

from caffeine_lib.errors import FILESYSTEM_ERROR, BackendFault, NotFoundRecord
from caffeine_lib.storage.file_backend import FileStorageBackend


def test_layout_one_dir_per_namespace_one_file_per_key(tmp_path):
    b = FileStorageBackend(root_dir=tmp_path)
    b.init()
    b.upsert('users', 'jack', b'{"name":"jack"}')
    assert (tmp_path / 'users' / 'jack.json').read_bytes() == b'{"name":"jack"}'


def test_init_creates_root(tmp_path):
    root = tmp_path / 'a' / 'b'
    FileStorageBackend(root_dir=root).init()
    assert root.is_dir()


def test_init_failure_is_backend_fault(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('x')
    with pytest.raises(BackendFault) as ei:
        FileStorageBackend(root_dir=blocker / 'sub').init()
    assert ei.value.code == FILESYSTEM_ERROR


def test_get_all_ignores_foreign_and_temp_files(tmp_path):
    b = FileStorageBackend(root_dir=tmp_path)
    b.init()
    b.upsert('ns', 'a', b'1')
    (tmp_path / 'ns' / 'notes.txt').write_text('hello')
    (tmp_path / 'ns' / 'b.json.deadbeef.tmp').write_text('{')
    assert b.get_all('ns') == {'a': b'1'}


def test_failed_write_keeps_previous_value(tmp_path, monkeypatch):
    b = FileStorageBackend(root_dir=tmp_path)
    b.init()
    b.upsert('ns', 'a', b'{"v":1}')

    def boom(src, dst):
        raise OSError(28, 'No space left on device')

    monkeypatch.setattr(os, 'replace', boom)
    with pytest.raises(BackendFault) as ei:
        b.upsert('ns', 'a', b'{"v":2}')
    assert 'No space left' in str(ei.value)
    monkeypatch.undo()

    assert b.get('ns', 'a') == b'{"v":1}'
    # the temporary file was cleaned up
    assert sorted(p.name for p in (tmp_path / 'ns').iterdir()) == ['a.json']


def test_rejects_path_like_names(tmp_path):
    b = FileStorageBackend(root_dir=tmp_path)
    b.init()
    with pytest.raises(BackendFault):
        b.upsert('..', 'x', b'1')
    with pytest.raises(BackendFault):
        b.get('ns', '../escape')


def test_get_namespaces_only_lists_directories(tmp_path):
    b = FileStorageBackend(root_dir=tmp_path)
    b.init()
    (tmp_path / 'stray.json').write_text('{}')
    b.upsert('ns', 'a', b'1')
    assert b.get_namespaces() == ['ns']


def test_get_namespaces_never_raises(tmp_path):
    b = FileStorageBackend(root_dir=tmp_path / 'missing')
    assert b.get_namespaces() == []


def test_delete_removes_file(tmp_path):
    b = FileStorageBackend(root_dir=tmp_path)
    b.init()
    b.upsert('ns', 'a', b'1')
    b.delete('ns', 'a')
    assert not (tmp_path / 'ns' / 'a.json').exists()
    with pytest.raises(NotFoundRecord):
        b.delete('ns', 'a')
