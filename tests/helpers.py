from typing import Any, Optional

from starlette.testclient import TestClient

from caffeine_lib.config import ServerConfig
from caffeine_lib.main import create_app
from caffeine_lib.services.container import ServiceContainer
from caffeine_lib.storage import MemoryStorage


def make_client(config: Optional[ServerConfig] = None, storage: Any = None) -> TestClient:
    """Build an app on the memory backend (unless told otherwise) and wrap it."""
    config = config or ServerConfig(storage_backend='memory', log_level='WARNING')
    if storage is None and config.storage_backend == 'memory':
        storage = MemoryStorage()
    return TestClient(create_app(config, storage=storage))


def register_service_on_client(client: TestClient, name: str, instance: Any) -> None:
    """Register (or replace) a service instance in the app's DI container.

    Usage in tests:
        from tests.helpers import register_service_on_client
        register_service_on_client(client, 'document_service', fake_service)
    """
    container = getattr(client.app.state, 'container', None)
    if container is None:
        container = ServiceContainer()
        client.app.state.container = container
    container.register_singleton(name, instance)
