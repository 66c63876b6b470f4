from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List

from models.chatbot_node import NodeKind, FileType, NodeRef, NodeLocation, NodeCta, NodeApi

# Reply button titles are sent cut to this length (WhatsApp limit)
MAX_BUTTON_TITLE_LENGTH = 20

class MessageIntent(BaseModel):
    """
    Send-ready description of one outbound message derived from one node
    """
    nodeId: str
    message: str = ""
    link: Optional[str] = None
    fileType: FileType = FileType.NONE
    openChat: bool = False  # True hands the conversation over to a human agent
    type: NodeKind
    children: List[NodeRef] = Field(default_factory=list)
    location: Optional[NodeLocation] = None
    cta: Optional[NodeCta] = None
    api: Optional[NodeApi] = None

class SendDirective(str, Enum):
    BUTTONS = "buttons"
    LOCATION = "location"
    CTA = "cta"
    API = "api"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"
