"""Live updates for the admin and client dashboards."""

import asyncio
from typing import Optional
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from components.core.security import token_subject
from components.payment.feed import ChangeFeed
from components.user.models import User
from components.user.repository import UserRepository

router = APIRouter(prefix="/live", tags=["live"])


async def _websocket_user(websocket: WebSocket, token: Optional[str]) -> Optional[User]:
    user_id = token_subject(token)
    if user_id is None:
        return None
    async with websocket.app.state.db_manager.get_db() as db:
        return await UserRepository(db).get_by_id(user_id)


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        await websocket.send_json(await queue.get())


@router.websocket("/payments")
async def payment_changes(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Push a message for every payment change the user may see.

    Authenticate with ``?token=<access token>``. Messages carry type,
    payment_id, job_id and client_id; dashboards refetch on receipt.
    """
    user = await _websocket_user(websocket, token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    feed: ChangeFeed = websocket.app.state.change_feed
    with feed.listen(None if user.is_admin else user.id) as queue:
        await websocket.accept()
        sender = asyncio.create_task(_forward(websocket, queue))
        try:
            # Inbound frames are ignored; this only waits for the disconnect
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            sender.cancel()
