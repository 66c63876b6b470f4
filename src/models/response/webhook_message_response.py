from typing import Optional, List
from pydantic import BaseModel, Field


class WebhookMessageResponse(BaseModel):
    """
    Response model for inbound webhook message processing
    """
    status: str = Field(..., description="Processing status: success, error")
    message: str = Field(..., description="Human-readable description of what happened")
    handled: bool = Field(default=False, description="Whether a chatbot handled the message")
    chatbot_id: Optional[str] = Field(None, description="Chatbot that handled the message")
    current_node: Optional[str] = Field(None, description="Node the conversation is parked at after processing")
    sent_message_ids: List[str] = Field(default_factory=list, description="WhatsApp ids of messages sent, in order")
    error_details: Optional[str] = Field(None, description="Error details if status is error")
