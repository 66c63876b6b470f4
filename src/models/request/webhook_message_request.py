from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class WebhookMessageRequest(BaseModel):
    """
    Request model for inbound WhatsApp messages forwarded by the webhook receiver.
    Text messages carry message_body.text.body, button clicks carry
    message_body.interactive.button_reply.{id,title}.
    """
    sender: str = Field(..., description="Customer phone number")
    workspace_id: int = Field(..., description="Workspace ID for multitenancy")
    message_type: str = Field(..., description="Type of message (text, interactive, button)")
    message_body: Dict[str, Any] = Field(..., description="Message content/payload")
    message_id: Optional[str] = Field(None, description="Inbound WhatsApp message id")

    class Config:
        json_schema_extra = {
            "example": {
                "sender": "+1234567890",
                "workspace_id": 12,
                "message_type": "interactive",
                "message_body": {
                    "type": "interactive",
                    "interactive": {
                        "type": "button_reply",
                        "button_reply": {"id": "BUTTON_NODE-abc", "title": "Yes"}
                    }
                }
            }
        }
