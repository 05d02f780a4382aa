import asyncio
from datetime import datetime
from decimal import Decimal

from components.payment import events
from components.payment.feed import ChangeFeed


def charge(payment_id, client_id, job_id=None):
    return events.ObligationCreated(
        payment_id=payment_id,
        client_id=client_id,
        job_id=job_id,
        amount=Decimal("500.00"),
        actor_id=1,
        occurred_at=datetime(2024, 4, 1),
        description="Filing fee",
    )


def drain(queue):
    messages = []
    while not queue.empty():
        messages.append(queue.get_nowait())
    return messages


def test_listeners_see_only_their_own_payments():
    async def scenario():
        bus = events.EventBus()
        feed = ChangeFeed()
        feed.register(bus)

        with feed.listen(None) as admin, feed.listen(2) as asha, feed.listen(3) as ravi:
            await bus.publish(charge(10, client_id=2, job_id=7))
            await bus.publish(charge(11, client_id=3))
            return drain(admin), drain(asha), drain(ravi)

    admin, asha, ravi = asyncio.run(scenario())
    assert [message["payment_id"] for message in admin] == [10, 11]
    assert asha == [{"type": "ObligationCreated", "payment_id": 10, "job_id": 7, "client_id": 2}]
    assert ravi == [{"type": "ObligationCreated", "payment_id": 11, "job_id": None, "client_id": 3}]


def test_slow_listener_loses_oldest_messages():
    async def scenario():
        feed = ChangeFeed(queue_size=3)
        with feed.listen(None) as queue:
            for payment_id in range(1, 6):
                feed.handle(charge(payment_id, client_id=2))
            return drain(queue)

    messages = asyncio.run(scenario())
    assert [message["payment_id"] for message in messages] == [3, 4, 5]


def test_listener_is_removed_when_it_stops_listening():
    feed = ChangeFeed()
    with feed.listen(2) as queue:
        assert feed.listener_count == 1
    assert feed.listener_count == 0

    feed.handle(charge(1, client_id=2))
    assert queue.empty()
