import asyncio
from datetime import datetime
from decimal import Decimal

from components.core import exceptions
from components.notification.channels import LogNotificationChannel, NotificationChannel, Recipient
from components.notification.notifier import ClientNotifier, render
from components.payment import events
from components.payment.obligations import ObligationCreator
from components.payment.offline import OfflineSettlementRecorder
from components.payment.reconciliation import AdminReconciler
from components.payment.repository import PaymentRepository
from components.payment.settlement import SettlementReporter

UPI_EVIDENCE = {"upi_id": "asha@okbank", "name": "Asha Kumar"}


class FailingChannel(NotificationChannel):
    def __init__(self):
        self.attempts = 0

    async def send(self, recipient: Recipient, subject: str, body: str) -> None:
        self.attempts += 1
        raise exceptions.DependencyError("SMTP server unreachable")


def make_event(cls, **extra):
    return cls(
        payment_id=1,
        client_id=2,
        job_id=3,
        amount=Decimal("1500.00"),
        actor_id=1,
        occurred_at=datetime(2024, 4, 1),
        **extra,
    )


def test_render_messages():
    assert render(make_event(events.ObligationCreated, description="ITR filing")) == (
        "New payment request", "New payment request of ₹1,500.00 for ITR filing"
    )
    assert render(make_event(events.PaymentConfirmed, method="UPI"))[1] == "Payment of ₹1,500.00 has been confirmed"
    assert render(make_event(events.OfflinePaymentRecorded, method="CASH")) == (
        "Payment confirmed", "Payment of ₹1,500.00 has been confirmed"
    )
    assert render(make_event(events.PaymentRejected, reason="No such UTR"))[1] == (
        "Payment of ₹1,500.00 was rejected. Reason: No such UTR"
    )
    assert render(make_event(events.SettlementReported, method="UPI")) is None


def test_bus_isolates_failing_subscribers():
    bus = events.EventBus()
    received = []

    def broken(event):
        raise RuntimeError("dashboard offline")

    async def collect(event):
        received.append(event)

    bus.subscribe(events.DomainEvent, broken)
    bus.subscribe(events.PaymentConfirmed, collect)
    bus.subscribe(events.PaymentRejected, collect)

    confirmed = make_event(events.PaymentConfirmed, method="UPI")
    asyncio.run(bus.publish(confirmed))
    assert received == [confirmed]

    bus.unsubscribe(events.PaymentConfirmed, collect)
    asyncio.run(bus.publish(confirmed))
    assert received == [confirmed]


def test_client_is_notified_of_decisions(run_db, manager, seed_users, add_job, channel):
    async def scenario(session):
        bus = events.EventBus()
        notifier = ClientNotifier(channel, manager.get_session())
        notifier.register(bus)

        users = await seed_users(session)
        job = await add_job(session, users.client)
        record = await ObligationCreator(session, bus).create_obligation(job.id, "1500", "ITR filing", users.admin)
        await SettlementReporter(session, bus).report_settlement(record.id, "UPI", UPI_EVIDENCE, users.client)
        await AdminReconciler(session, bus).reject_payment(record.id, "No such UTR", users.admin)
        await session.commit()
        await notifier.drain()

    run_db(scenario)
    assert sorted((recipient.email, subject) for recipient, subject, _ in channel.sent) == [
        ("asha@client.test", "New payment request"),
        ("asha@client.test", "Payment rejected"),
    ]


def test_failed_delivery_does_not_undo_confirmation(run_db, manager, seed_users, add_job):
    channel = FailingChannel()

    async def scenario(session):
        bus = events.EventBus()
        notifier = ClientNotifier(channel, manager.get_session())
        notifier.register(bus)

        users = await seed_users(session)
        job = await add_job(session, users.client)
        record = await ObligationCreator(session, bus).create_obligation(job.id, "1500", "ITR filing", users.admin)
        await SettlementReporter(session, bus).report_settlement(record.id, "UPI", UPI_EVIDENCE, users.client)
        record = await AdminReconciler(session, bus).confirm_payment(record.id, users.admin)
        assert record.status == "Paid"

        await session.commit()
        await notifier.drain()
        assert await notifier.notify(make_event(events.PaymentConfirmed, method="UPI")) is False

        record = await PaymentRepository(session).get_by_id(record.id)
        return record.status

    assert run_db(scenario) == "Paid"
    assert channel.attempts >= 2


def test_client_is_notified_of_offline_settlement(run_db, manager, seed_users, add_job, channel):
    async def scenario(session):
        bus = events.EventBus()
        notifier = ClientNotifier(channel, manager.get_session())
        notifier.register(bus)

        users = await seed_users(session)
        job = await add_job(session, users.client)
        await ObligationCreator(session, bus).create_obligation(job.id, "800.00", "Bookkeeping", users.admin)
        await OfflineSettlementRecorder(session, bus).record_offline_payment(job.id, None, "CASH", users.admin)
        await session.commit()
        await notifier.drain()

    run_db(scenario)
    assert sorted(body for _, _, body in channel.sent) == [
        "New payment request of ₹800.00 for Bookkeeping",
        "Payment of ₹800.00 has been confirmed",
    ]


def test_log_channel_keeps_nothing_after_sending():
    channel = LogNotificationChannel()
    recipient = Recipient(client_id=2, email="asha@client.test")

    async def send_many():
        for _ in range(500):
            await channel.send(recipient, "Payment confirmed", "Payment of ₹1 has been confirmed")

    asyncio.run(send_many())
    assert vars(channel) == {}
