from fastapi import WebSocket
from typing import Dict, Iterable, List, Optional, Set
import logging
import asyncio
import uuid
from collections import defaultdict

from hangoutz.config import settings
from hangoutz.schemas.websocket import WebSocketEventType
from hangoutz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def personal_room(user_id: str) -> str:
    return f"user:{user_id}"


def conversation_room(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


class Connection:
    """One authenticated socket. A user may hold several at once."""

    def __init__(self, websocket: WebSocket, user_id: str, user_name: Optional[str] = None):
        self.id = str(uuid.uuid4())
        self.websocket = websocket
        self.user_id = user_id
        self.user_name = user_name
        self.rooms: Set[str] = set()
        self.heartbeat_task: Optional[asyncio.Task] = None

    async def send(self, message: dict):
        await self.websocket.send_json(message)


class ConnectionManager:
    """
    Registry of live connections and the rooms they belong to.

    Every connection is a member of its personal room for its whole lifetime
    and of any conversation rooms it joined explicitly. Registry mutations
    never await, so on a single event loop they cannot interleave; sends
    happen outside of them on a snapshot of the room.
    """

    def __init__(self, heartbeat_interval: Optional[float] = None):
        self.connections: Dict[str, Connection] = {}
        self.user_connections: Dict[str, Set[str]] = defaultdict(set)
        self.rooms: Dict[str, Set[str]] = defaultdict(set)
        self.HEARTBEAT_INTERVAL = (
            settings.ws_heartbeat_interval if heartbeat_interval is None else heartbeat_interval
        )

    async def connect(self, websocket: WebSocket, user_id: str, user_name: Optional[str] = None) -> Connection:
        await websocket.accept()
        connection = Connection(websocket, user_id, user_name)
        self.connections[connection.id] = connection
        self.user_connections[user_id].add(connection.id)
        self.join_room(connection, personal_room(user_id))

        if self.HEARTBEAT_INTERVAL and self.HEARTBEAT_INTERVAL > 0:
            connection.heartbeat_task = asyncio.create_task(self._start_heartbeat(connection))

        logger.info(f"User {user_id} connected ({connection.id}), {len(self.user_connections[user_id])} live connection(s)")
        return connection

    async def disconnect(self, connection: Connection, reason: str = "Unknown"):
        logger.info(f"Disconnecting user {connection.user_id} ({connection.id}). Reason: {reason}")
        self._unregister(connection)

        if connection.heartbeat_task and connection.heartbeat_task is not asyncio.current_task():
            connection.heartbeat_task.cancel()
        connection.heartbeat_task = None

        try:
            if connection.websocket.client_state.name == "CONNECTED":
                await connection.websocket.close()
        except Exception as e:
            logger.warning(f"Failed to close WebSocket for user {connection.user_id}: {e}")

    def _unregister(self, connection: Connection):
        for room in list(connection.rooms):
            self.leave_room(connection, room)

        self.connections.pop(connection.id, None)
        user_conns = self.user_connections.get(connection.user_id)
        if user_conns is not None:
            user_conns.discard(connection.id)
            if not user_conns:
                del self.user_connections[connection.user_id]

    def join_room(self, connection: Connection, room: str):
        self.rooms[room].add(connection.id)
        connection.rooms.add(room)

    def leave_room(self, connection: Connection, room: str):
        members = self.rooms.get(room)
        if members is not None:
            members.discard(connection.id)
            if not members:
                del self.rooms[room]
        connection.rooms.discard(room)

    def is_user_online(self, user_id: str) -> bool:
        return bool(self.user_connections.get(user_id))

    def get_online_users(self) -> List[str]:
        return list(self.user_connections.keys())

    def get_room_members(self, room: str) -> List[Connection]:
        return [self.connections[cid] for cid in list(self.rooms.get(room, ())) if cid in self.connections]

    async def _start_heartbeat(self, connection: Connection):
        """Send heartbeat frames to the client until the connection goes away."""
        while True:
            try:
                await asyncio.sleep(self.HEARTBEAT_INTERVAL)
                if connection.id not in self.connections:
                    break
                await connection.send({
                    "type": WebSocketEventType.HEARTBEAT.value,
                    "timestamp": utcnow().isoformat(),
                })
            except asyncio.CancelledError:
                logger.debug(f"Heartbeat task cancelled for connection {connection.id}")
                break
            except Exception as e:
                logger.warning(f"Heartbeat failed for user {connection.user_id}: {e}")
                await self.disconnect(connection, reason="heartbeat failed")
                break

    async def _send(self, connection: Connection, message: dict) -> bool:
        try:
            await connection.send(message)
            return True
        except Exception as e:
            logger.warning(f"WebSocket send failed for user {connection.user_id}: {e}")
            await self.disconnect(connection, reason="send_json failed")
            return False

    async def emit_to_room(
        self,
        room: str,
        event_type: str,
        data: dict,
        exclude: Optional[Connection] = None,
    ) -> int:
        """
        Emit an event to every connection in a room.

        Fire and forget: an empty room drops the event.

        Returns:
            int: Number of connections the event was delivered to
        """
        event_type = getattr(event_type, "value", event_type)
        message = {"type": event_type, **data}
        targets = [c for c in self.get_room_members(room) if exclude is None or c.id != exclude.id]
        if not targets:
            logger.debug(f"No active connections in room {room} for {event_type}")
            return 0

        delivered = 0
        for connection in targets:
            if await self._send(connection, message):
                delivered += 1
        return delivered

    async def emit_to_user(self, user_id: str, event_type: str, data: dict) -> int:
        return await self.emit_to_room(personal_room(str(user_id)), event_type, data)

    async def emit_to_users(self, user_ids: Iterable[str], event_type: str, data: dict) -> int:
        delivered = 0
        for user_id in user_ids:
            delivered += await self.emit_to_user(user_id, event_type, data)
        return delivered

    async def emit_to_conversation(
        self,
        conversation_id: str,
        event_type: str,
        data: dict,
        exclude: Optional[Connection] = None,
    ) -> int:
        return await self.emit_to_room(conversation_room(str(conversation_id)), event_type, data, exclude=exclude)

    async def broadcast(self, event_type: str, data: dict, exclude: Optional[Connection] = None) -> int:
        """Emit to every live connection except `exclude`."""
        event_type = getattr(event_type, "value", event_type)
        message = {"type": event_type, **data}
        delivered = 0
        for connection in list(self.connections.values()):
            if exclude is not None and connection.id == exclude.id:
                continue
            if await self._send(connection, message):
                delivered += 1
        return delivered


manager = ConnectionManager()
