from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

class SendRequestIn(BaseModel):
    username_or_email: Optional[str] = None
    message: Optional[str] = None

class FriendRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    status: str
    message: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ChatOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    participant_ids: List[int]
    is_group: bool

class AcceptOut(BaseModel):
    friend_request: FriendRequestOut
    chat: ChatOut

class UserSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    name: Optional[str] = None
    image: Optional[str] = None

class PendingRequestOut(FriendRequestOut):
    counterpart: Optional[UserSummaryOut] = None

class FriendRequestsOut(BaseModel):
    incoming: List[PendingRequestOut]
    outgoing: List[PendingRequestOut]

class FriendOut(BaseModel):
    friend_id: int
    username: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    status: Optional[str] = None
    friend_request_id: int
    chat_id: Optional[int] = None

class ActionOkOut(BaseModel):
    ok: bool = True
    message: Optional[str] = None
