from typing import Any, Dict, Iterator


class ServiceContainer:
    """Named registry of the components one serving process shares.

    The container is attached to `app.state` by the application factory,
    nothing here is global.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, Any] = {}

    def register_singleton(self, name: str, instance: Any) -> None:
        self._instances[name] = instance

    def __contains__(self, name: str) -> bool:
        return name in self._instances

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._instances))

    def get(self, name: str) -> Any:
        try:
            return self._instances[name]
        except KeyError:
            raise KeyError(f"No service registered for key '{name}'") from None
