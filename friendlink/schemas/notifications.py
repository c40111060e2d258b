from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str
    content: str
    read: bool
    related_id: int
    ref_model: str
    created_at: Optional[datetime] = None

class MarkedReadOut(BaseModel):
    updated: int
