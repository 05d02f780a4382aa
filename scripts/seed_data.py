"""Script to seed demo data into the database."""

import asyncio
from decimal import Decimal

from sqlalchemy import delete

from components.core.init_db import db_manager
from components.core.log_config import configure_logging
from components.core.security import get_password_hash
from components.job.models import Job
from components.payment.events import EventBus
from components.payment.models import PaymentEvent, PaymentRecord
from components.payment.obligations import ObligationCreator
from components.payment.offline import OfflineSettlementRecorder
from components.payment.reconciliation import AdminReconciler
from components.payment.settlement import SettlementReporter
from components.user.models import USER_TYPE_ADMIN, USER_TYPE_CLIENT, User


async def seed_data():
    """Seed an admin, two clients and payments in every status."""
    await db_manager.create_all()
    bus = EventBus()

    async with db_manager.get_db() as db:
        # Clear existing data
        await db.execute(delete(PaymentEvent))
        await db.execute(delete(PaymentRecord))
        await db.execute(delete(Job))
        await db.execute(delete(User))
        await db.commit()

        admin = User(
            email="admin@shan-associates.in",
            password=get_password_hash("admin123"),
            full_name="Office Admin",
            user_type=USER_TYPE_ADMIN,
        )
        clients = [
            User(
                email="asha.kumar@example.com",
                password=get_password_hash("password123"),
                full_name="Asha Kumar",
                mobile="9876500001",
                user_type=USER_TYPE_CLIENT,
            ),
            User(
                email="ravi.shan@example.com",
                password=get_password_hash("password123"),
                full_name="Ravi Shan",
                mobile="9876500002",
                user_type=USER_TYPE_CLIENT,
            ),
        ]
        db.add_all([admin] + clients)
        await db.commit()

        jobs = []
        for client in clients:
            for title, job_type in (("Income tax return FY24", "ITR"), ("GST filing Q1", "GST"), ("Annual audit", "Audit")):
                jobs.append(Job(title=title, client_id=client.id, type=job_type))
        db.add_all(jobs)
        await db.commit()

        creator = ObligationCreator(db, bus)
        reporter = SettlementReporter(db, bus)
        reconciler = AdminReconciler(db, bus)
        offline = OfflineSettlementRecorder(db, bus)

        for index, job in enumerate(jobs):
            client = clients[0] if job.client_id == clients[0].id else clients[1]
            record = await creator.create_obligation(job.id, Decimal(1500 + 500 * index), job.title, admin)
            if index % 3 == 1:
                await reporter.report_settlement(
                    record.id, "UPI", {"upi_id": f"{client.mobile}@upi", "name": client.full_name}, client
                )
            elif index % 3 == 2 and index < 3:
                await reporter.report_settlement(
                    record.id, "BANK", {"account_number": "50100012345678", "name": client.full_name}, client
                )
                await reconciler.confirm_payment(record.id, admin)
            elif index % 3 == 2:
                await offline.record_offline_payment(job.id, None, "CASH", admin)

        print("Test data seeded successfully!")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_data())
