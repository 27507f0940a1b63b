import asyncio
import threading

import pytest

from caffeine_lib.broker import ChangeBroker, ChangeEvent
from caffeine_lib.broker.api import event_stream, format_sse
from caffeine_lib.errors import BrokerUnavailable


def _events(n, ns='users'):
    return [ChangeEvent.item_added(ns, str(i), {'i': i}) for i in range(n)]


def test_subscriber_receives_events_in_order():
    broker = ChangeBroker()
    e1, e2, e3 = _events(3)

    async def run():
        sub = broker.subscribe()
        for e in (e1, e2, e3):
            broker.publish(e)
        return [await sub.get() for _ in range(3)]

    assert asyncio.run(run()) == [e1, e2, e3]


def test_events_before_subscribing_are_not_delivered():
    broker = ChangeBroker()
    early, late = _events(2)

    async def run():
        broker.publish(early)
        sub = broker.subscribe()
        broker.publish(late)
        got = await asyncio.wait_for(sub.get(), timeout=1)
        return got, sub.depth

    got, depth = asyncio.run(run())
    assert got == late
    assert depth == 0


def test_publish_without_subscribers_is_harmless():
    broker = ChangeBroker()
    assert broker.publish(_events(1)[0]) == 0
    assert broker.stats() == {'subscribers': 0, 'published': 1, 'dropped': 0}


def test_independent_subscribers_each_get_everything():
    broker = ChangeBroker()
    events = _events(4)

    async def run():
        a = broker.subscribe()
        b = broker.subscribe()
        for e in events:
            broker.publish(e)
        got_a = [await a.get() for _ in events]
        got_b = [await b.get() for _ in events]
        return got_a, got_b

    got_a, got_b = asyncio.run(run())
    assert got_a == events
    assert got_b == events


def test_slow_subscriber_drops_oldest_without_blocking_publish():
    broker = ChangeBroker(queue_size=2)
    events = _events(5)

    async def run():
        slow = broker.subscribe()
        fast = broker.subscribe()
        received = []
        for e in events:
            broker.publish(e)
            # let the loop deliver, then drain only the fast subscriber
            await asyncio.sleep(0)
            received.append(await fast.get())
        return slow, received

    slow, received = asyncio.run(run())
    assert received == events
    assert slow.dropped == 3
    assert slow.depth == 2


def test_oldest_events_are_the_ones_dropped():
    broker = ChangeBroker(queue_size=2)
    events = _events(4)

    async def run():
        sub = broker.subscribe()
        for e in events:
            broker.publish(e)
        await asyncio.sleep(0)
        return [await sub.get(), await sub.get()]

    assert asyncio.run(run()) == events[2:]


def test_publish_from_worker_threads():
    broker = ChangeBroker(queue_size=1000)

    async def run():
        sub = broker.subscribe()
        per_thread = 50

        def worker(n):
            for i in range(per_thread):
                broker.publish(ChangeEvent.item_added(f'ns{n}', str(i), i))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        got = [await asyncio.wait_for(sub.get(), timeout=2) for _ in range(4 * per_thread)]
        return got

    got = asyncio.run(run())
    # per-publisher order is preserved
    for n in range(4):
        keys = [int(e.key) for e in got if e.namespace == f'ns{n}']
        assert keys == list(range(50))


def test_unsubscribe_ends_iteration_and_stops_delivery():
    broker = ChangeBroker()
    events = _events(2)

    async def run():
        sub = broker.subscribe()
        broker.publish(events[0])
        await asyncio.sleep(0)
        broker.unsubscribe(sub)
        broker.unsubscribe(sub)
        broker.publish(events[1])
        return [e async for e in sub], broker.stats()['subscribers']

    got, count = asyncio.run(run())
    assert got == [events[0]]
    assert count == 0


def test_close_ends_streams_and_refuses_new_subscribers():
    broker = ChangeBroker()

    async def run():
        sub = broker.subscribe()
        broker.close()
        return await asyncio.wait_for(sub.get(), timeout=1)

    assert asyncio.run(run()) is None
    with pytest.raises(BrokerUnavailable):
        broker.publish(_events(1)[0])

    async def resubscribe():
        broker.subscribe()

    with pytest.raises(BrokerUnavailable):
        asyncio.run(resubscribe())


def test_subscriber_with_dead_loop_is_removed():
    broker = ChangeBroker()

    async def run():
        return broker.subscribe()

    asyncio.run(run())  # the loop closes with the subscription still registered
    assert broker.stats()['subscribers'] == 1
    assert broker.publish(_events(1)[0]) == 0
    assert broker.stats()['subscribers'] == 0


def test_event_stream_formats_frames_and_unsubscribes():
    broker = ChangeBroker()
    event = _events(1)[0]

    async def never_disconnected():
        return False

    async def run():
        sub = broker.subscribe()
        stream = event_stream(broker, sub, never_disconnected, keepalive=0.05)
        hello = await stream.__anext__()
        keepalive = await stream.__anext__()
        broker.publish(event)
        frame = await stream.__anext__()
        await stream.aclose()
        return hello, keepalive, frame

    hello, keepalive, frame = asyncio.run(run())
    assert hello == ': connected\n\n'
    assert keepalive == ': keepalive\n\n'
    assert frame == format_sse(event)
    assert frame.startswith('data: {"event":"ITEM_ADDED"')
    assert broker.stats()['subscribers'] == 0


def test_event_stream_stops_when_client_disconnects():
    broker = ChangeBroker()

    async def gone():
        return True

    async def run():
        sub = broker.subscribe()
        return [frame async for frame in event_stream(broker, sub, gone, keepalive=0.01)]

    assert asyncio.run(run()) == [': connected\n\n']
    assert broker.stats()['subscribers'] == 0
