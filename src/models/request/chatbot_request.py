from pydantic import BaseModel, Field
from typing import Optional

from models.visual_graph import VisualGraph


class ChatbotRequest(BaseModel):
    """
    Request body for creating or updating a chatbot from the builder
    """
    name: str
    trigger: Optional[str] = None
    publish: bool = False
    default: bool = False
    graph: VisualGraph = Field(default_factory=VisualGraph)
