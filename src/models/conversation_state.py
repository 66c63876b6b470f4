from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

CONVERSATION_OPEN = "open"  # A human agent owns the chat
CONVERSATION_CLOSED = "closed"  # The bot owns the chat

class ConversationState(BaseModel):
    id: Optional[str] = None  # MongoDB _id
    phone: str
    workspace_id: int
    chatbot_id: Optional[str] = None
    current_node: Optional[str] = None  # Parked node id
    chatbot_timeout: Optional[datetime] = None  # Abandon the wait after this instant
    status: str = Field(default=CONVERSATION_CLOSED, description="open | closed")
    last_message_id: Optional[str] = None  # Inbound WhatsApp id of the last message that changed this state
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.chatbot_timeout is None:
            return True
        return self.chatbot_timeout < (now or datetime.utcnow())

    def clear_chatbot(self, status: Optional[str] = None) -> "ConversationState":
        return self.model_copy(update={
            "chatbot_id": None,
            "current_node": None,
            "chatbot_timeout": None,
            "status": status or self.status,
        })
