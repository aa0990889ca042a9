# --- START OF FILE backend/ptcoach/db/models/user.py ---

from datetime import datetime, UTC
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey,
    UniqueConstraint, Boolean, Enum
)
from sqlalchemy.orm import relationship
from ptcoach.db.base import Base
from ptcoach.core.enums import UserRole


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole, native_enum=False), nullable=False, default=UserRole.CLIENT, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String, nullable=True, unique=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    purchases = relationship("PackagePurchase", back_populates="user", order_by="desc(PackagePurchase.expires_at)")

    @property
    def full_name(self) -> str | None:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None


class TrainerClient(Base):
    __tablename__ = "trainer_clients"
    id = Column(Integer, primary_key=True)
    trainer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    trainer = relationship("User", foreign_keys=[trainer_id])
    client = relationship("User", foreign_keys=[client_id])

    __table_args__ = (UniqueConstraint('trainer_id', 'client_id', name='_trainer_client_uc'),)
