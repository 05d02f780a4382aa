"""Client declarations of payments made outside the portal."""

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.core.database import utcnow
from components.payment import events
from components.payment.models import PaymentMethod, PaymentRecord, PaymentStatus
from components.payment.projection import StatusProjector
from components.payment.repository import PaymentRepository, validate_method
from components.user.models import User
from components.user.utils import ensure_client

logger = logging.getLogger(__name__)

CLIENT_METHODS = (PaymentMethod.UPI, PaymentMethod.BANK, PaymentMethod.QR)

EVIDENCE_FIELDS = {
    PaymentMethod.UPI: ("upi_id", "name"),
    PaymentMethod.QR: ("upi_id", "name"),
    PaymentMethod.BANK: ("account_number", "name"),
}

# camelCase keys sent by older dashboard forms
EVIDENCE_ALIASES = {
    "upiId": "upi_id",
    "accountNumber": "account_number",
}


def clean_evidence(method: PaymentMethod, evidence: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Keep the method's evidence fields, all required and non-blank."""
    evidence = evidence or {}
    normalised = {EVIDENCE_ALIASES.get(key, key): value for key, value in evidence.items()}

    clean, missing = {}, []
    for name in EVIDENCE_FIELDS[method]:
        value = normalised.get(name)
        value = str(value).strip() if value is not None else ""
        if not value:
            missing.append(name)
        clean[name] = value
    if missing:
        raise exceptions.ValidationError(
            f"Missing {method.value} payment details: {', '.join(missing)}",
            details={"missing": missing},
        )
    return clean


class SettlementReporter:
    """Moves a Pending record to Waiting for Confirmation with client evidence."""

    def __init__(self, session: AsyncSession, bus: Optional[events.EventBus] = None):
        self.session = session
        self.bus = bus or events.event_bus
        self.payments = PaymentRepository(session)
        self.projector = StatusProjector(session)

    async def report_settlement(
        self,
        payment_id: int,
        method,
        evidence: Optional[Mapping[str, Any]],
        actor: User,
    ) -> PaymentRecord:
        ensure_client(actor)
        method = validate_method(method, CLIENT_METHODS)
        details = clean_evidence(method, evidence)

        record = await self.payments.get_by_id(payment_id)
        if record is None or record.client_id != actor.id:
            raise exceptions.NotFoundError(f"Payment {payment_id} not found")

        record = await self.payments.update(
            payment_id,
            {
                "status": PaymentStatus.WAITING_FOR_CONFIRMATION,
                "payment_method": method,
                "paid_at": utcnow(),
                "payment_details": details,
                "rejection_reason": None,
            },
            expected_status=PaymentStatus.PENDING,
            log=events.LogEntry(
                event_type=events.SETTLEMENT_REPORTED,
                from_status=PaymentStatus.PENDING.value,
                to_status=PaymentStatus.WAITING_FOR_CONFIRMATION.value,
                actor_id=actor.id,
                data={"method": method.value, "evidence": details},
            ),
        )
        logger.info("Settlement reported for payment %s via %s by client %s", payment_id, method.value, actor.id)

        await self.projector.refresh_job_flag(record.job_id)
        await self.bus.publish(events.SettlementReported(
            payment_id=record.id,
            client_id=record.client_id,
            job_id=record.job_id,
            amount=Decimal(record.amount),
            actor_id=actor.id,
            occurred_at=record.paid_at,
            method=method.value,
        ))
        return record
