"""Invoice data for settled payments."""

from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.core.config import get_settings
from components.payment import schemas
from components.payment.models import PaymentStatus
from components.payment.repository import PaymentRepository
from components.user.models import User
from components.user.repository import UserRepository
from components.user.utils import can_view_client


def invoice_number(payment_id: int) -> str:
    return f"INV-{payment_id}"


class InvoiceBuilder:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.payments = PaymentRepository(session)
        self.users = UserRepository(session)

    async def build(self, payment_id: int, actor: User) -> schemas.InvoiceData:
        """Invoice fields for a Paid record the actor may see."""
        record = await self.payments.get_by_id(payment_id)
        if record is None or not can_view_client(actor, record.client_id):
            raise exceptions.NotFoundError(f"Payment {payment_id} not found")
        if record.status != PaymentStatus.PAID.value:
            raise exceptions.StateConflictError(
                f"Invoices are only issued for paid payments; payment {payment_id} is '{record.status}'"
            )

        client = await self.users.get_by_id(record.client_id)
        return schemas.InvoiceData(
            invoice_number=invoice_number(record.id),
            payment_id=record.id,
            payment_date=record.paid_at or record.created_at,
            amount=record.amount,
            description=record.description,
            payment_method=record.payment_method,
            client_name=client.full_name if client else "Unknown",
            client_email=client.email if client else "Unknown",
            issuer=get_settings().FIRM_NAME,
        )
