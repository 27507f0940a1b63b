"""Server-Sent-Events endpoint streaming change events to one client."""
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Request
from starlette.responses import StreamingResponse

from caffeine_lib.services.resolver import resolve_service
from .broker import ChangeBroker, Subscription
from .events import ChangeEvent

router = APIRouter()
logger = logging.getLogger(__name__)


def format_sse(event: ChangeEvent) -> str:
    return f"data: {event.to_json()}\n\n"


async def event_stream(
    broker: ChangeBroker,
    sub: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float = 15.0,
) -> AsyncIterator[str]:
    """Yield SSE frames for `sub` until the client goes away or the broker closes.

    The subscription is always released on exit, including cancellation.
    """
    try:
        yield ": connected\n\n"
        while True:
            try:
                event = await asyncio.wait_for(sub.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                if await is_disconnected():
                    break
                yield ": keepalive\n\n"
                continue
            if event is None:
                break
            yield format_sse(event)
    finally:
        broker.unsubscribe(sub)


@router.get('/broker')
async def api_broker(request: Request):
    broker: ChangeBroker = resolve_service(request, 'broker')
    sub = broker.subscribe()
    keepalive = getattr(request.app.state, 'broker_keepalive_seconds', 15.0)
    return StreamingResponse(
        event_stream(broker, sub, request.is_disconnected, keepalive),
        media_type='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )
