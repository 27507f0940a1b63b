import pytest

from caffeine_lib.services import ServiceContainer
from tests.helpers import make_client


def test_register_and_get():
    c = ServiceContainer()
    c.register_singleton('b', 2)
    c.register_singleton('a', 1)
    assert 'a' in c and 'b' in c
    assert list(c) == ['a', 'b']
    assert c.get('a') == 1


def test_re_registration_replaces():
    c = ServiceContainer()
    c.register_singleton('a', 'first')
    c.register_singleton('a', 'second')
    assert c.get('a') == 'second'


def test_missing_service():
    with pytest.raises(KeyError):
        ServiceContainer().get('nope')


def test_app_registers_its_components():
    client = make_client()
    assert list(client.app.state.container) == ['config', 'document_service', 'storage']


def test_unregistered_service_is_server_error():
    client = make_client()
    del client.app.state.container._instances['document_service']
    r = client.get('/ns')
    assert r.status_code == 500
