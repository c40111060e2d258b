from sqlalchemy import Column, Integer, Boolean, DateTime, UniqueConstraint, func
from . import Base

class Chat(Base):
    __tablename__ = 'chats'
    id = Column(Integer, primary_key=True)
    user_low = Column(Integer, nullable=True)
    user_high = Column(Integer, nullable=True)
    is_group = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        UniqueConstraint('user_low', 'user_high', name='uix_chat_pair'),
    )

    @property
    def participant_ids(self) -> list[int]:
        return [self.user_low, self.user_high]
