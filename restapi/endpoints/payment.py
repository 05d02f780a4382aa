"""Payment endpoints for the API."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db, get_event_bus
from components.core.schemas import ErrorResponse
from components.payment import schemas
from components.payment.events import EventBus
from components.payment.export import statement_csv
from components.payment.invoice import InvoiceBuilder
from components.payment.models import PaymentStatus
from components.payment.obligations import ObligationCreator
from components.payment.offline import OfflineSettlementRecorder
from components.payment.projection import StatusProjector, fold_events
from components.payment.reconciliation import AdminReconciler
from components.payment.repository import PaymentRepository
from components.payment.settlement import SettlementReporter
from components.user.models import User
from components.user.utils import can_view_client
from restapi.endpoints.auth import get_current_user, require_admin, require_client

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)


@router.post("/obligations", response_model=schemas.PaymentRecord)
async def create_obligation(
    obligation: schemas.ObligationCreate,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: User = Depends(require_admin)
):
    """
    Raise a new charge against a job.

    The record starts Pending with no payment method. The job's amount due
    is updated to the same amount.
    """
    return await ObligationCreator(db, bus).create_obligation(
        obligation.job_id,
        obligation.amount,
        obligation.description,
        current_user,
        client_id=obligation.client_id,
    )


@router.post("/offline", response_model=schemas.PaymentRecord)
async def record_offline_payment(
    payment: schemas.OfflinePaymentCreate,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: User = Depends(require_admin)
):
    """Record a cash or in-person UPI payment for a job."""
    return await OfflineSettlementRecorder(db, bus).record_offline_payment(
        payment.job_id, payment.amount, payment.method, current_user
    )


@router.get("/waiting", response_model=List[schemas.WaitingPayment])
async def list_waiting_for_confirmation(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Payments reported by clients and awaiting an admin decision."""
    return await StatusProjector(db).list_waiting_for_confirmation()


@router.get("/statement", response_model=List[schemas.PaymentRecord])
async def read_statement(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_client)
):
    """The client's statement: one row per job, newest first."""
    return await StatusProjector(db).client_statement(current_user.id)


@router.get("/statement.csv")
async def download_statement(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_client)
):
    """The client's statement as a CSV file."""
    rows = await StatusProjector(db).client_statement(current_user.id)
    return Response(
        content=statement_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="statement.csv"'},
    )


@router.get("/", response_model=List[schemas.PaymentRecord])
async def read_payments(
    client_id: Optional[int] = Query(None, description="Filter by client (admins only)"),
    job_id: Optional[int] = Query(None, description="Filter by job"),
    status: Optional[PaymentStatus] = Query(None, description="Filter by status"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Full payment history, newest first. Clients only see their own."""
    if not current_user.is_admin:
        client_id = current_user.id
    return await PaymentRepository(db).fetch(client_id=client_id, job_id=job_id, status=status)


@router.get("/{payment_id}", response_model=schemas.PaymentRecord)
async def read_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    record = await PaymentRepository(db).get_by_id(payment_id)
    if record is None or not can_view_client(current_user, record.client_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    return record


@router.post("/{payment_id}/settlement", response_model=schemas.PaymentRecord)
async def report_settlement(
    payment_id: int,
    report: schemas.SettlementReport,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: User = Depends(require_client)
):
    """
    Declare a payment made by UPI, bank transfer or QR scan.

    Evidence for UPI and QR: upi_id and name. For BANK: account_number
    and name. The payment moves to Waiting for Confirmation.
    """
    return await SettlementReporter(db, bus).report_settlement(
        payment_id, report.method, report.evidence, current_user
    )


@router.post("/{payment_id}/confirm", response_model=schemas.PaymentRecord)
async def confirm_payment(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: User = Depends(require_admin)
):
    """Confirm a reported payment."""
    return await AdminReconciler(db, bus).confirm_payment(payment_id, current_user)


@router.post("/{payment_id}/reject", response_model=schemas.PaymentRecord)
async def reject_payment(
    payment_id: int,
    rejection: schemas.PaymentRejection,
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
    current_user: User = Depends(require_admin)
):
    """Reject a reported payment; it returns to Pending with the reason attached."""
    return await AdminReconciler(db, bus).reject_payment(payment_id, rejection.reason, current_user)


@router.get("/{payment_id}/history", response_model=schemas.PaymentHistory)
async def read_payment_history(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Event log of a payment and the status it replays to."""
    repo = PaymentRepository(db)
    record = await repo.get_by_id(payment_id)
    if record is None or not can_view_client(current_user, record.client_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    entries = await repo.get_events(payment_id)
    return schemas.PaymentHistory(
        payment=schemas.PaymentRecord.model_validate(record),
        events=[schemas.PaymentEvent.model_validate(entry) for entry in entries],
        replayed_status=fold_events(entries),
    )


@router.get("/{payment_id}/invoice", response_model=schemas.InvoiceData)
async def read_invoice(
    payment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Invoice data for a paid payment."""
    return await InvoiceBuilder(db).build(payment_id, current_user)
