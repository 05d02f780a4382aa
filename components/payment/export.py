"""Tabular exports of payment records."""

from typing import Iterable

import pandas as pd

from components.payment.models import PaymentRecord, PaymentStatus

STATEMENT_COLUMNS = [
    "id",
    "job_id",
    "description",
    "amount",
    "status",
    "payment_method",
    "created_at",
    "paid_at",
    "rejection_reason",
]


def statement_frame(rows: Iterable[PaymentRecord]) -> pd.DataFrame:
    """One line per statement row, amounts kept as exact strings."""
    data = [
        {
            "id": row.id,
            "job_id": row.job_id,
            "description": row.description,
            "amount": str(row.amount),
            "status": row.status,
            "payment_method": row.payment_method,
            "created_at": row.created_at,
            "paid_at": row.paid_at,
            "rejection_reason": row.rejection_reason if row.status == PaymentStatus.PENDING.value else None,
        }
        for row in rows
    ]
    return pd.DataFrame(data, columns=STATEMENT_COLUMNS)


def statement_csv(rows: Iterable[PaymentRecord]) -> str:
    return statement_frame(rows).to_csv(index=False)
