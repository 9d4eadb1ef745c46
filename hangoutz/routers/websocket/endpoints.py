import json
import logging
from typing import Optional

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from hangoutz.core.exceptions import AuthenticationError
from hangoutz.core.security import authenticate
from hangoutz.core.websocket.message_handler import MessageHandler
from hangoutz.core.websocket.websocket_manager import manager
from hangoutz.database import AsyncSessionLocal
from hangoutz.schemas.websocket import WebSocketEventType
from hangoutz.services.user_service import touch_last_active

# Set up the logger
logger = logging.getLogger(__name__)

# Create router for WebSocket endpoints
router = APIRouter(tags=["web-socket"])


def _extract_token(websocket: WebSocket) -> Optional[str]:
    """Bearer credential from the `token` query parameter or the Authorization header."""
    token = websocket.query_params.get("token")
    if token:
        return token

    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def _update_last_active(user_id: str):
    try:
        async with AsyncSessionLocal() as db:
            await touch_last_active(db, user_id)
    except Exception:
        logger.exception(f"Failed to update last_active for user {user_id}")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Main WebSocket endpoint for user connections.

    Flow:
        1. Verifies the bearer credential presented in the handshake
        2. Accepts the connection and joins the user's personal room
        3. Processes incoming frames until disconnection
        4. Announces the user's presence change and records last activity
    """
    try:
        async with AsyncSessionLocal() as db:
            user = await authenticate(db, _extract_token(websocket))
            user_id, user_name = user.id, user.name
    except AuthenticationError as e:
        logger.warning(f"Rejected WebSocket connection: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    connection = await manager.connect(websocket, user_id, user_name)

    # Initialize message handler for processing incoming frames
    message_handler = MessageHandler(manager)
    reason = "client disconnected"

    try:
        await connection.send({
            "type": WebSocketEventType.CONNECTED.value,
            "userId": user_id,
            "connectionId": connection.id,
        })
        await _update_last_active(user_id)

        # Main message processing loop
        while True:
            raw = await websocket.receive_text()
            try:
                message_data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring malformed frame from user {user_id}")
                continue

            await message_handler.handle_message(message_data, connection)

    except WebSocketDisconnect:
        logger.info(f"User {user_id} disconnected from WebSocket")
    except Exception:
        reason = "server error"
        logger.exception(f"Error during WebSocket connection for user {user_id}")
    finally:
        # Cleanup must finish even when the connection task is being cancelled
        with anyio.CancelScope(shield=True):
            await manager.disconnect(connection, reason=reason)
            await message_handler.broadcast_status(connection, online=manager.is_user_online(user_id))
            await _update_last_active(user_id)
