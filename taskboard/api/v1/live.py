"""Live collection subscriptions over WebSocket."""
import asyncio
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from taskboard.database import AsyncSessionLocal
from taskboard.dependencies import resolve_session_token
from taskboard.localization.helpers import get_locale_from_request
from taskboard.services.subscription_service import Subscription, change_feed

logger = logging.getLogger(__name__)

router = APIRouter()

CLOSE_CODES = {
    status.HTTP_401_UNAUTHORIZED: 4401,
    status.HTTP_403_FORBIDDEN: 4403,
    status.HTTP_422_UNPROCESSABLE_ENTITY: 4422,
}


async def _receive_until_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            # Client messages carry nothing; reading detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/{collection}")
async def live_collection(
    websocket: WebSocket,
    collection: str,
    token: str,
    board_id: Optional[UUID] = None,
):
    """Stream full snapshots of ``collection`` for the token's user.

    Each message is ``{"type": "snapshot", "collection": ..., "items": [...]}``
    holding the complete current result. A terminal failure sends one
    ``{"type": "error"}`` message and closes the socket.
    """
    await websocket.accept()
    locale = get_locale_from_request(websocket)

    async def send_snapshot(items: List[Any]) -> None:
        await websocket.send_json(
            {"type": "snapshot", "collection": collection, "items": jsonable_encoder(items)}
        )

    async def send_error(exc: Exception) -> None:
        detail = exc.detail if isinstance(exc, HTTPException) else str(exc)
        await websocket.send_json({"type": "error", "detail": detail})

    filters: Dict[str, Any] = {}
    if board_id is not None:
        filters["board_id"] = board_id

    subscription: Optional[Subscription] = None
    try:
        async with AsyncSessionLocal() as db:
            session = await resolve_session_token(db, token, locale)
        subscription = await change_feed.subscribe(session, collection, filters, send_snapshot, send_error)
    except HTTPException as exc:
        await send_error(exc)
        await websocket.close(code=CLOSE_CODES.get(exc.status_code, 4400))
        return

    receiver = asyncio.create_task(_receive_until_disconnect(websocket))
    closer = asyncio.create_task(subscription.wait_closed())
    try:
        done, pending = await asyncio.wait({receiver, closer}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if closer in done:
            logger.info("Subscription %s ended, closing socket", subscription.id)
            await websocket.close(code=4401)
    finally:
        subscription.cancel()
