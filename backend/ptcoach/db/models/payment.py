# backend/ptcoach/db/models/payment.py
from datetime import datetime, UTC
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, Boolean, Index
from sqlalchemy.orm import relationship
from ptcoach.db.base import Base
from ptcoach.core.enums import PaytrMode


class PaytrSetting(Base):
    __tablename__ = "paytr_settings"
    id = Column(Integer, primary_key=True)
    mode = Column(Enum(PaytrMode, native_enum=False), nullable=False, default=PaytrMode.TEST)
    merchant_id = Column(String(64), nullable=False)
    encrypted_merchant_key = Column(String, nullable=False)
    encrypted_merchant_salt = Column(String, nullable=False)
    merchant_ok_url = Column(String, nullable=True)
    merchant_fail_url = Column(String, nullable=True)
    merchant_webhook_url = Column(String, nullable=True)
    currency = Column(String(8), nullable=False, default="TL")
    language = Column(String(8), nullable=False, default="tr")
    iframe_debug = Column(Boolean, nullable=False, default=False)
    non_3d = Column(Boolean, nullable=False, default=False)
    max_installment = Column(Integer, nullable=False, default=0)
    payment_methods = Column(JSON, nullable=True)
    installment_config = Column(JSON, nullable=True)
    extra_config = Column(JSON, nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_email = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC), index=True)


class PaytrLog(Base):
    """Журнал попыток оплаты и административных действий с PayTR."""
    __tablename__ = "paytr_logs"
    id = Column(Integer, primary_key=True)
    action = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    # Для платежных записей здесь хранится merchant_oid
    message = Column(String, nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    user_email = Column(String, nullable=True)
    ip_address = Column(String(64), nullable=True)
    payload = Column(JSON, nullable=True)
    error = Column(JSON, nullable=True)
    setting_id = Column(Integer, ForeignKey("paytr_settings.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True)

    user = relationship("User")

    __table_args__ = (
        Index("ix_paytr_logs_action_message_user", "action", "message", "user_id"),
    )
