import enum
from sqlalchemy import Column, Integer, String, DateTime, func
from . import Base

class UserStatus(str, enum.Enum):
    ONLINE = 'online'
    OFFLINE = 'offline'
    AWAY = 'away'
    BUSY = 'busy'

class User(Base):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String(150), nullable=True)
    image = Column(String, nullable=True)
    status = Column(String(16), nullable=False, default=UserStatus.OFFLINE.value, server_default=UserStatus.OFFLINE.value)
    status_message = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
