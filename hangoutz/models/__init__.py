from .user import User
from .user_block import UserBlock
from .event import Event, EventParticipant
from .conversation import Conversation, ConversationParticipant
from .message import Message

__all__ = ["User", "UserBlock", "Event", "EventParticipant", "Conversation", "ConversationParticipant", "Message"]
