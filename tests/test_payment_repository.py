from decimal import Decimal

import pytest

from components.core import exceptions
from components.payment.models import PaymentStatus
from components.payment.repository import PaymentRepository, validate_amount


@pytest.mark.parametrize("amount, expected", [
    ("1000", Decimal("1000")),
    (250.5, Decimal("250.5")),
    ("99999999.99", Decimal("99999999.99")),
])
def test_validate_amount_accepts(amount, expected):
    assert validate_amount(amount) == expected


@pytest.mark.parametrize("amount", [0, "-1", "0.001", "100000000", "NaN", True, None, "ten"])
def test_validate_amount_rejects(amount):
    with pytest.raises(exceptions.ValidationError):
        validate_amount(amount)


def test_create_rejects_unknown_status_and_method(run_db, seed_users):
    async def scenario(session):
        users = await seed_users(session)
        repo = PaymentRepository(session)
        base = {"client_id": users.client.id, "amount": "10", "description": "Filing fee"}

        with pytest.raises(exceptions.ValidationError):
            await repo.create({**base, "status": "Settled"})
        with pytest.raises(exceptions.ValidationError):
            await repo.create({**base, "payment_method": "CHEQUE"})
        with pytest.raises(exceptions.ValidationError):
            await repo.create({"amount": "10", "description": "No client"})

        record = await repo.create(base)
        assert record.status == "Pending"
        assert await repo.fetch(client_id=users.client.id) == [record]

    run_db(scenario)


def test_guarded_update_applies_only_from_expected_status(run_db, seed_users, manager):
    async def scenario(session):
        users = await seed_users(session)
        repo = PaymentRepository(session)
        record = await repo.create({"client_id": users.client.id, "amount": "10", "description": "Filing fee"})

        updated = await repo.update(
            record.id,
            {"status": PaymentStatus.WAITING_FOR_CONFIRMATION, "payment_method": "UPI"},
            expected_status=PaymentStatus.PENDING,
        )
        assert updated.status == "Waiting for Confirmation"
        assert updated.payment_method == "UPI"

        async with manager.get_db() as other:
            with pytest.raises(exceptions.StateConflictError) as excinfo:
                await PaymentRepository(other).update(
                    record.id, {"status": PaymentStatus.PAID}, expected_status=PaymentStatus.PENDING
                )
            assert excinfo.value.details == {"current_status": "Waiting for Confirmation"}
            with pytest.raises(exceptions.NotFoundError):
                await PaymentRepository(other).update(404, {"status": PaymentStatus.PAID})

        assert (await repo.get_by_id(record.id)).status == "Waiting for Confirmation"

    run_db(scenario)
