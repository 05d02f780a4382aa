"""Client endpoints for the dashboards."""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.payment import schemas
from components.payment.projection import StatusProjector
from components.user.models import User
from components.user.repository import UserRepository
from components.user.utils import can_view_client
from restapi.endpoints.auth import get_current_user, require_admin

router = APIRouter(
    prefix="/clients",
    tags=["clients"],
    responses={404: {"description": "Not found"}},
)


@router.get("/pending-totals", response_model=List[schemas.PendingTotal])
async def read_pending_totals(
    skip: int = Query(0, ge=0, description="Number of clients to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of clients to return"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Outstanding amount for every client, for the admin client list."""
    projector = StatusProjector(db)
    clients = await UserRepository(db).get_clients(skip=skip, limit=limit)
    return [
        schemas.PendingTotal(
            client_id=client.id,
            pending_total=await projector.get_client_pending_total(client.id),
        )
        for client in clients
    ]


@router.get("/{client_id}/pending-total", response_model=schemas.PendingTotal)
async def read_pending_total(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Outstanding amount for one client.

    Sums each job's current payment record while it is Pending or
    Waiting for Confirmation. Superseded records never count.
    """
    if not can_view_client(current_user, client_id):
        raise HTTPException(status_code=404, detail="Client not found")
    total = await StatusProjector(db).get_client_pending_total(client_id)
    return schemas.PendingTotal(client_id=client_id, pending_total=total)
