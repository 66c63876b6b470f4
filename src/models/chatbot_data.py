from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime

from models.visual_graph import VisualGraph

class ChatbotData(BaseModel):
    id: Optional[str] = None  # MongoDB _id
    workspace_id: int
    name: str
    trigger: Optional[str] = None  # Always stored with a leading "/"
    publish: bool = False
    default: bool = False  # Workspace fallback bot for closed conversations
    graph: VisualGraph = Field(default_factory=VisualGraph, description="Nodes and edges as authored in the builder")
    bot: Dict[str, Any] = Field(default_factory=dict, description="Compiled node map, {nodeId: ChatbotNode}")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
