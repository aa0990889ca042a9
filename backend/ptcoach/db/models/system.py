# backend/ptcoach/db/models/system.py
import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text, Enum
from sqlalchemy.orm import relationship
from ptcoach.db.base import Base
from ptcoach.core.enums import LogLevel

class AdminLog(Base):
    """Журнал аудита: действия тренеров и администраторов, отправка писем."""
    __tablename__ = "admin_logs"
    id = Column(Integer, primary_key=True)
    level = Column(Enum(LogLevel, native_enum=False), nullable=False, default=LogLevel.INFO, index=True)
    message = Column(Text, nullable=False)
    source = Column(String(64), nullable=True, index=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_email = Column(String, nullable=True)
    context = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.datetime.now(datetime.UTC), index=True)
    actor = relationship("User")
