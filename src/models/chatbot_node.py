from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal

class NodeKind(str, Enum):
    START_NODE = "START_NODE"
    MESSAGE_REPLY_NODE = "MESSAGE_REPLY_NODE"
    OPTION_MESSAGE_NODE = "OPTION_MESSAGE_NODE"
    OPTION_NODE = "OPTION_NODE"
    CHAT_WITH_AGENT = "CHAT_WITH_AGENT"
    BUTTON_MESSAGE_NODE = "BUTTON_MESSAGE_NODE"
    BUTTON_NODE = "BUTTON_NODE"
    CHAT_BOT_MSG_NODE = "CHAT_BOT_MSG_NODE"
    TEXT_NODE = "TEXT_NODE"
    IMAGE_NODE = "IMAGE_NODE"
    VIDEO_NODE = "VIDEO_NODE"
    AUDIO_NODE = "AUDIO_NODE"
    FILE_NODE = "FILE_NODE"
    INTERACTIVE_NODE = "INTERACTIVE_NODE"
    MAPS_NODE = "MAPS_NODE"
    CTA_BUTTON_NODE = "CTA_BUTTON_NODE"
    API_NODE = "API_NODE"
    CONDITION_NODE = "CONDITION_NODE"
    TEMPLATE_NODE = "TEMPLATE_NODE"

    @classmethod
    def parse(cls, value: Any) -> Optional["NodeKind"]:
        """Return the matching kind, or None for anything the builder should not produce."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None

# Kinds that only carry routing and never produce an outbound message
STRUCTURAL_KINDS = frozenset({
    NodeKind.START_NODE,
    NodeKind.BUTTON_NODE,
    NodeKind.OPTION_NODE,
})

# Kinds whose children are rendered as a numbered menu inside the message text
NUMBERED_MENU_KINDS = frozenset({
    NodeKind.OPTION_MESSAGE_NODE,
})

class FileType(str, Enum):
    NONE = "none"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"

    @classmethod
    def parse(cls, value: Any) -> "FileType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "none").lower())
        except ValueError:
            return cls.NONE

MEDIA_FILE_TYPES = frozenset({FileType.IMAGE, FileType.VIDEO, FileType.AUDIO})

class NodeLocation(BaseModel):
    latitude: float
    longitude: float
    address: str = ""
    name: Optional[str] = None

class NodeCta(BaseModel):
    buttonText: str
    url: str
    style: Optional[Literal["primary", "secondary", "outline"]] = None

class NodeApi(BaseModel):
    endpoint: str
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"] = "GET"
    headers: Optional[Dict[str, str]] = None
    body: Optional[str] = None
    description: Optional[str] = None

class NodeRef(BaseModel):
    """
    One entry of a node's ordered children.

    A plain reference is {id, message}. Once the child has its own outgoing
    edge the compiler swaps it for the fuller record
    {type, next, nodeId, children: [], message, needResponse: false}.
    """
    model_config = ConfigDict(extra='allow')

    id: Optional[str] = None
    nodeId: Optional[str] = None
    type: Optional[NodeKind] = None
    next: Optional[str] = None
    message: str = ""
    children: Optional[List[Any]] = None
    needResponse: Optional[bool] = None

    @field_validator("message", mode="before")
    @classmethod
    def normalize_message(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def ref_id(self) -> Optional[str]:
        return self.nodeId or self.id

class ChatbotNode(BaseModel):
    model_config = ConfigDict(extra='allow')

    nodeId: str
    type: NodeKind
    message: str = ""
    link: Optional[str] = None
    fileType: FileType = FileType.NONE
    children: List[NodeRef] = Field(default_factory=list)
    next: Optional[str] = None
    needResponse: bool = False
    location: Optional[NodeLocation] = None
    cta: Optional[NodeCta] = None
    api: Optional[NodeApi] = None

    @field_validator("fileType", mode="before")
    @classmethod
    def normalize_file_type(cls, value: Any) -> FileType:
        return FileType.parse(value)

    @field_validator("message", mode="before")
    @classmethod
    def normalize_message(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @model_validator(mode="after")
    def derive_need_response(self) -> "ChatbotNode":
        # needResponse is never trusted from input
        self.needResponse = len(self.children) > 0
        return self

    @field_serializer("children")
    def serialize_children(self, children: List[NodeRef]) -> List[Dict[str, Any]]:
        return [child.model_dump(mode="json", exclude_none=True) for child in children]

# Flat run-time representation of a bot: nodeId -> ChatbotNode
NodeMap = Dict[str, ChatbotNode]

def dump_node_map(node_map: NodeMap) -> Dict[str, Any]:
    return {node_id: node.model_dump(mode="json") for node_id, node in node_map.items()}
