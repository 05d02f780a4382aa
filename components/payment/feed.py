"""Live change feed for open dashboards."""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from components.payment import events

logger = logging.getLogger(__name__)

QUEUE_SIZE = 100


def change_message(event: events.DomainEvent) -> Dict[str, Any]:
    """What changed, without the new state; receivers refetch through the API."""
    return {
        "type": type(event).__name__,
        "payment_id": event.payment_id,
        "job_id": event.job_id,
        "client_id": event.client_id,
    }


class ChangeFeed:
    """
    Fans payment events out to connected dashboards.

    An admin listener receives every change, a client listener only
    changes to its own payments. A listener that falls behind loses its
    oldest queued messages rather than holding up the publisher.
    """

    def __init__(self, queue_size: int = QUEUE_SIZE):
        self.queue_size = queue_size
        self._listeners: Dict[asyncio.Queue, Optional[int]] = {}

    def register(self, bus: events.EventBus) -> None:
        bus.subscribe(events.DomainEvent, self.handle)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @contextmanager
    def listen(self, client_id: Optional[int]) -> Iterator[asyncio.Queue]:
        """Queue of change messages, for one client or for all when ``client_id`` is None."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._listeners[queue] = client_id
        try:
            yield queue
        finally:
            self._listeners.pop(queue, None)

    def handle(self, event: events.DomainEvent) -> None:
        message = change_message(event)
        for queue, client_id in list(self._listeners.items()):
            if client_id is not None and client_id != event.client_id:
                continue
            if queue.full():
                queue.get_nowait()
                logger.warning("Change feed listener is behind; dropped a message before payment %s", event.payment_id)
            queue.put_nowait(message)
