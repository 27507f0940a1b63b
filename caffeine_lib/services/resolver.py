from typing import Any

from fastapi import HTTPException
from starlette.requests import Request


def _container(request: Request):
    return getattr(request.app.state, 'container', None)


def resolve_service(request: Request, name: str) -> Any:
    """Look up `name` in the application's service container.

    A missing container or registration is a server misconfiguration and
    surfaces as HTTP 500.
    """
    container = _container(request)
    if container is None:
        raise HTTPException(status_code=500, detail="Service container not configured")
    try:
        return container.get(name)
    except KeyError:
        raise HTTPException(status_code=500, detail=f"Service '{name}' not configured")


def resolve_optional_service(request: Request, name: str) -> Any:
    """Like `resolve_service` but returns None when `name` is not registered."""
    container = _container(request)
    if container is None or name not in container:
        return None
    return container.get(name)
