from fastapi import APIRouter, Request

from caffeine_lib.services.resolver import resolve_optional_service
from .health import get_health

router = APIRouter()


@router.get('/health')
def api_health(request: Request):
    storage = resolve_optional_service(request, 'storage')
    broker = resolve_optional_service(request, 'broker')
    return get_health(
        backend=getattr(storage, 'name', None),
        broker_stats=broker.stats() if broker is not None else None,
    )
