import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, func
from . import Base

class FriendRequestStatus(str, enum.Enum):
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    DECLINED = 'DECLINED'

class FriendRequest(Base):
    __tablename__ = 'friend_requests'
    # set on the instance returned by a send that reused a DECLINED record; not stored
    revived = False
    id = Column(Integer, primary_key=True)
    sender_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    receiver_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    # sorted copy of (sender_id, receiver_id); one row per pair whatever the direction
    user_low = Column(Integer, nullable=False)
    user_high = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=FriendRequestStatus.PENDING.value)
    message = Column(Text, nullable=False, default='')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    __table_args__ = (
        UniqueConstraint('user_low', 'user_high', name='uix_friend_request_pair'),
    )
