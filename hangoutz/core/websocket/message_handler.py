import logging
from typing import Callable, Dict

from pydantic import ValidationError as PydanticValidationError

from hangoutz.core.websocket.websocket_manager import (
    Connection,
    ConnectionManager,
    conversation_room,
)
from hangoutz.schemas.websocket import (
    ConversationSignal,
    TypingMessage,
    UserStatusMessage,
    WebSocketEventType,
)

# Set up the logger
logger = logging.getLogger(__name__)


class MessageHandler:
    """
    Handles frames received from an authenticated WebSocket connection.
    """

    def __init__(self, manager: ConnectionManager):
        """
        Args:
            manager: WebSocket connection manager instance
        """
        self.manager = manager
        # Map frame types to their handler functions
        self.handlers: Dict[str, Callable] = {
            WebSocketEventType.TYPING_START.value: self.handle_typing_start,
            WebSocketEventType.TYPING_STOP.value: self.handle_typing_stop,
            WebSocketEventType.CONVERSATION_JOIN.value: self.handle_conversation_join,
            WebSocketEventType.CONVERSATION_LEAVE.value: self.handle_conversation_leave,
            WebSocketEventType.USER_ONLINE.value: self.handle_user_online,
            WebSocketEventType.HEARTBEAT.value: self.handle_heartbeat,
        }

    async def handle_message(self, message_data: dict, connection: Connection):
        """
        Route an incoming frame to the handler for its type.

        A failing handler is logged and swallowed so that one bad frame never
        tears down the connection.
        """
        if not isinstance(message_data, dict):
            logger.warning(f"Ignoring non-object frame from user {connection.user_id}")
            return

        message_type = message_data.get("type")
        handler = self.handlers.get(message_type) if isinstance(message_type, str) else None

        if handler is None:
            logger.warning(f"Unsupported message type: {message_type}")
            return

        try:
            await handler(message_data, connection)
        except PydanticValidationError as e:
            logger.warning(f"Invalid {message_type} frame from user {connection.user_id}: {e.errors()}")
        except Exception:
            logger.exception(f"Error handling {message_type} frame from user {connection.user_id}")

    async def handle_typing_start(self, message_data: dict, connection: Connection):
        signal = ConversationSignal(**message_data)
        payload = TypingMessage(
            type=WebSocketEventType.USER_TYPING,
            userId=connection.user_id,
            userName=connection.user_name,
            conversationId=signal.conversationId,
        )
        await self.manager.emit_to_conversation(
            signal.conversationId,
            WebSocketEventType.USER_TYPING,
            payload.model_dump(exclude={"type"}),
            exclude=connection,
        )

    async def handle_typing_stop(self, message_data: dict, connection: Connection):
        signal = ConversationSignal(**message_data)
        payload = TypingMessage(
            type=WebSocketEventType.USER_STOP_TYPING,
            userId=connection.user_id,
            conversationId=signal.conversationId,
        )
        await self.manager.emit_to_conversation(
            signal.conversationId,
            WebSocketEventType.USER_STOP_TYPING,
            payload.model_dump(exclude={"type", "userName"}),
            exclude=connection,
        )

    async def handle_conversation_join(self, message_data: dict, connection: Connection):
        signal = ConversationSignal(**message_data)
        self.manager.join_room(connection, conversation_room(signal.conversationId))
        logger.info(f"User {connection.user_id} joined conversation {signal.conversationId}")

    async def handle_conversation_leave(self, message_data: dict, connection: Connection):
        signal = ConversationSignal(**message_data)
        self.manager.leave_room(connection, conversation_room(signal.conversationId))
        logger.info(f"User {connection.user_id} left conversation {signal.conversationId}")

    async def handle_user_online(self, message_data: dict, connection: Connection):
        await self.broadcast_status(connection, online=True)

    async def handle_heartbeat(self, message_data: dict, connection: Connection):
        logger.debug(f"Received heartbeat response from user {connection.user_id}")

    async def broadcast_status(self, connection: Connection, online: bool):
        """Tell every other connection whether this user is online."""
        payload = UserStatusMessage(userId=connection.user_id, online=online)
        await self.manager.broadcast(
            WebSocketEventType.USER_STATUS,
            payload.model_dump(exclude={"type"}),
            exclude=connection,
        )
