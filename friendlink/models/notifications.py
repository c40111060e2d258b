import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, func
from . import Base

class NotificationType(str, enum.Enum):
    FRIEND_REQUEST = 'FRIEND_REQUEST'
    FRIEND_ACCEPTED = 'FRIEND_ACCEPTED'

class RefModel(str, enum.Enum):
    FRIEND_REQUEST = 'FriendRequest'
    CHAT = 'Chat'

class Notification(Base):
    __tablename__ = 'notifications'
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    type = Column(String(32), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    related_id = Column(Integer, nullable=False)
    ref_model = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
