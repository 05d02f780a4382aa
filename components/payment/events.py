"""Domain events emitted by the payment engine and the in-process bus that carries them.

Every transition produces two things:

* a :class:`LogEntry`, persisted as a ``payment_events`` row inside the same
  transaction as the status change, so a payment's history can be replayed;
* a :class:`DomainEvent`, published on the :class:`EventBus` after commit for
  dashboards and notifiers to react to.

Subscribers are independent. A failing subscriber is logged and never undoes
the transition that produced the event.
"""

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)

OBLIGATION_CREATED = "ObligationCreated"
SETTLEMENT_REPORTED = "SettlementReported"
PAYMENT_CONFIRMED = "PaymentConfirmed"
PAYMENT_REJECTED = "PaymentRejected"
OFFLINE_PAYMENT_RECORDED = "OfflinePaymentRecorded"


@dataclass
class LogEntry:
    """Event-log row staged alongside a payment write."""
    event_type: str
    to_status: str
    from_status: Optional[str] = None
    actor_id: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DomainEvent:
    payment_id: int
    client_id: int
    job_id: Optional[int]
    amount: Decimal
    actor_id: Optional[int]
    occurred_at: datetime


@dataclass(frozen=True)
class ObligationCreated(DomainEvent):
    description: str


@dataclass(frozen=True)
class SettlementReported(DomainEvent):
    method: str


@dataclass(frozen=True)
class PaymentConfirmed(DomainEvent):
    method: Optional[str]


@dataclass(frozen=True)
class PaymentRejected(DomainEvent):
    reason: str


@dataclass(frozen=True)
class OfflinePaymentRecorded(DomainEvent):
    method: str


Handler = Callable[[DomainEvent], Any]


class EventBus:
    """Publish/subscribe channel for payment domain events."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        """Register ``handler`` for ``event_type`` and its subclasses."""
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def handlers_for(self, event: DomainEvent) -> List[Handler]:
        matched = []
        for event_type, handlers in list(self._handlers.items()):
            if isinstance(event, event_type):
                matched.extend(handlers)
        return matched

    async def publish(self, event: DomainEvent) -> None:
        """Deliver ``event`` to every matching subscriber."""
        for handler in self.handlers_for(event):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Subscriber %r failed on %s for payment %s",
                    handler, type(event).__name__, event.payment_id,
                )


event_bus = EventBus()
