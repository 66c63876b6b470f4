from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any

class VisualNodeData(BaseModel):
    model_config = ConfigDict(extra='allow')  # Builder adds UI-only fields (childrenCount, labels, etc.)

    message: Optional[str] = None
    link: Optional[str] = None
    fileType: Optional[str] = None
    children: List[str] = Field(default_factory=list)  # Child node ids, not yet resolved to text
    location: Optional[Dict[str, Any]] = None
    cta: Optional[Dict[str, Any]] = None
    api: Optional[Dict[str, Any]] = None

    @field_validator("children", mode="before")
    @classmethod
    def default_children(cls, value: Any) -> List[str]:
        return value or []

class VisualNode(BaseModel):
    """
    A node as posted by the chatbot builder canvas
    """
    model_config = ConfigDict(extra='allow')  # position, width, selected, ...

    id: str
    type: str
    data: Optional[VisualNodeData] = None
    parentNode: Optional[str] = None  # Container node this node is drawn inside

class VisualEdge(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: Optional[str] = None
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None

class VisualGraph(BaseModel):
    nodes: List[VisualNode] = Field(default_factory=list)
    edges: List[VisualEdge] = Field(default_factory=list)
