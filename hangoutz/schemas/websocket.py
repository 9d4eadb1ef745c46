from enum import Enum
from pydantic import BaseModel
from typing import Optional


class WebSocketEventType(str, Enum):
    # Client -> server
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"
    CONVERSATION_JOIN = "conversation:join"
    CONVERSATION_LEAVE = "conversation:leave"
    USER_ONLINE = "user:online"

    # Server -> client
    CONNECTED = "connected"
    EVENT_NEW_PARTICIPANT = "event:newParticipant"
    MESSAGE_NEW = "message:new"
    MESSAGE_DELETED = "message:deleted"
    MESSAGE_READ = "message:read"
    USER_TYPING = "user:typing"
    USER_STOP_TYPING = "user:stopTyping"
    USER_STATUS = "user:status"

    # Both directions
    HEARTBEAT = "heartbeat"


class ConversationSignal(BaseModel):
    """Payload of typing and room join/leave frames."""
    conversationId: str


class UserStatusMessage(BaseModel):
    type: WebSocketEventType = WebSocketEventType.USER_STATUS
    userId: str
    online: bool


class TypingMessage(BaseModel):
    type: WebSocketEventType
    userId: str
    conversationId: str
    userName: Optional[str] = None
