from pydantic import BaseModel
from typing import Optional

from models.message_intent import SendDirective


class SendResult(BaseModel):
    """
    Outcome of sending one message intent
    """
    status: str  # "sent", "error"
    node_id: str
    directive: SendDirective
    message_id: Optional[str] = None  # WhatsApp message id (wamid.*) when sent
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == "sent"
