from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pandas as pd
import pytest

from components.core import exceptions
from components.payment import events
from components.payment.export import STATEMENT_COLUMNS, statement_csv, statement_frame
from components.payment.projection import fold_events, pending_total, statement_rows

START = datetime(2024, 4, 1, 9, 0)


def make_record(id, status="Pending", job_id=1, amount="1000", minutes=0, **extra):
    fields = dict(
        id=id,
        job_id=job_id,
        client_id=7,
        amount=Decimal(amount),
        description=f"Charge {id}",
        status=status,
        payment_method=None,
        rejection_reason=None,
        created_at=START + timedelta(minutes=minutes),
        paid_at=None,
    )
    fields.update(extra)
    return SimpleNamespace(**fields)


def entry(event_type, to_status):
    return SimpleNamespace(event_type=event_type, to_status=to_status)


def test_statement_keeps_newest_record_per_job():
    rows = statement_rows([
        make_record(1, job_id=1, minutes=0),
        make_record(2, job_id=1, amount="300", minutes=10),
        make_record(3, job_id=2, status="Paid", minutes=5),
    ])
    assert [row.id for row in rows] == [2, 3]


def test_statement_drops_record_superseded_by_newer_paid_one():
    rows = statement_rows([
        make_record(1, job_id=1, amount="500", minutes=0),
        make_record(2, job_id=1, amount="500", status="Paid", minutes=5),
    ])
    assert [row.id for row in rows] == [2]

    rows = statement_rows([
        make_record(1, job_id=None, amount="500", minutes=0),
        make_record(2, job_id=None, amount="500", status="Paid", minutes=5),
        make_record(3, job_id=None, amount="80", minutes=7),
    ])
    assert [row.id for row in rows] == [3, 2, 1]


def test_pending_total_sums_outstanding_statuses():
    total = pending_total([
        make_record(1, status="Pending", amount="100.50"),
        make_record(2, status="Waiting for Confirmation", amount="200"),
        make_record(3, status="Paid", amount="999"),
        make_record(4, status="Rejected", amount="999"),
    ])
    assert total == Decimal("300.50")
    assert pending_total([]) == Decimal("0")


def test_fold_events_replays_lifecycle():
    log = [
        entry(events.OBLIGATION_CREATED, "Pending"),
        entry(events.SETTLEMENT_REPORTED, "Waiting for Confirmation"),
        entry(events.PAYMENT_REJECTED, "Pending"),
        entry(events.OFFLINE_PAYMENT_RECORDED, "Paid"),
    ]
    assert fold_events(log) == "Paid"
    assert fold_events([]) is None
    assert fold_events([entry(events.OFFLINE_PAYMENT_RECORDED, "Paid")]) == "Paid"


@pytest.mark.parametrize("log", [
    [entry(events.SETTLEMENT_REPORTED, "Waiting for Confirmation")],
    [entry(events.OBLIGATION_CREATED, "Pending"), entry(events.PAYMENT_CONFIRMED, "Paid")],
    [entry(events.OBLIGATION_CREATED, "Paid")],
])
def test_fold_events_rejects_inconsistent_log(log):
    with pytest.raises(exceptions.StateConflictError):
        fold_events(log)


def test_statement_csv_hides_stale_rejection_reason():
    rows = [
        make_record(1, job_id=1, status="Pending", rejection_reason="Wrong reference", minutes=10),
        make_record(2, job_id=2, status="Paid", amount="250.00", rejection_reason="Old reason",
                    payment_method="UPI", paid_at=START),
    ]
    frame = statement_frame(rows)
    assert list(frame.columns) == STATEMENT_COLUMNS
    assert frame.loc[0, "rejection_reason"] == "Wrong reference"
    assert pd.isna(frame.loc[1, "rejection_reason"])
    assert frame.loc[1, "amount"] == "250.00"

    lines = statement_csv(rows).splitlines()
    assert lines[0] == ",".join(STATEMENT_COLUMNS)
    assert len(lines) == 3
