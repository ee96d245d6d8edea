from models.base import Base
from models.user import User
from models.conversation import Conversation
from models.message import Message
from models.persona_state import PersonaState
from models.event import Event

__all__ = [
    "Base",
    "User",
    "Conversation",
    "Message",
    "PersonaState",
    "Event",
]
