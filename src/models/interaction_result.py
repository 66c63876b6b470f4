from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List

from models.message_intent import MessageIntent

class InteractionStatus(str, Enum):
    RESOLVED = "resolved"
    BUTTON_NOT_FOUND = "button_not_found"
    OPTION_NOT_FOUND = "option_not_found"
    NOT_WAITING = "not_waiting"  # Parked node has no children to choose from
    EMPTY_FLOW = "empty_flow"

class InteractionResult(BaseModel):
    status: InteractionStatus
    intents: List[MessageIntent] = Field(default_factory=list)
    parked_node_id: Optional[str] = None  # Node the conversation now waits on, None when the flow ended
    next_node_id: Optional[str] = None  # Node the walk started from

    @property
    def resolved(self) -> bool:
        return self.status == InteractionStatus.RESOLVED
