"""Tells clients about payment decisions without holding up the engine."""

import asyncio
import logging
from typing import Set

from components.core.database import SessionMaker
from components.notification.channels import NotificationChannel, Recipient
from components.payment import events
from components.user.repository import UserRepository

logger = logging.getLogger(__name__)


def render(event: events.DomainEvent):
    """Subject and body for a client-facing event, or None if it is not one."""
    amount = f"₹{event.amount:,}"
    if isinstance(event, events.ObligationCreated):
        return "New payment request", f"New payment request of {amount} for {event.description}"
    if isinstance(event, (events.PaymentConfirmed, events.OfflinePaymentRecorded)):
        return "Payment confirmed", f"Payment of {amount} has been confirmed"
    if isinstance(event, events.PaymentRejected):
        return "Payment rejected", f"Payment of {amount} was rejected. Reason: {event.reason}"
    return None


class ClientNotifier:
    """
    Bus subscriber that delivers client notifications in background tasks.

    Delivery failures are logged and never reach the operation that
    published the event.
    """

    def __init__(self, channel: NotificationChannel, session_maker: SessionMaker):
        self.channel = channel
        self.session_maker = session_maker
        self._tasks: Set[asyncio.Task] = set()

    def register(self, bus: events.EventBus) -> None:
        bus.subscribe(events.ObligationCreated, self.handle)
        bus.subscribe(events.PaymentConfirmed, self.handle)
        bus.subscribe(events.PaymentRejected, self.handle)
        bus.subscribe(events.OfflinePaymentRecorded, self.handle)

    def handle(self, event: events.DomainEvent) -> None:
        task = asyncio.get_running_loop().create_task(self.notify(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def notify(self, event: events.DomainEvent) -> bool:
        message = render(event)
        if message is None:
            return False
        subject, body = message
        try:
            async with self.session_maker() as session:
                client = await UserRepository(session).get_by_id(event.client_id)
            if client is None:
                logger.warning("No client %s to notify about payment %s", event.client_id, event.payment_id)
                return False
            recipient = Recipient(client_id=client.id, email=client.email, full_name=client.full_name, mobile=client.mobile)
            await self.channel.send(recipient, subject, body)
            return True
        except Exception:
            logger.exception("Notification for payment %s to client %s failed", event.payment_id, event.client_id)
            return False

    async def drain(self) -> None:
        """Wait for in-flight deliveries."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
