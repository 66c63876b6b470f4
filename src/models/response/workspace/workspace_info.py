from pydantic import BaseModel
from typing import Optional

class WorkspaceInfo(BaseModel):
    id: int
    name: Optional[str] = None
    phone_id: str  # WhatsApp phone number id messages are sent from
    access_token: str
