# backend/ptcoach/db/models/package.py
from datetime import datetime, UTC
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, Boolean, Text, Index
from sqlalchemy.orm import relationship
from ptcoach.db.base import Base
from ptcoach.core.enums import PackageStatus


class Package(Base):
    __tablename__ = "packages"
    id = Column(Integer, primary_key=True)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    headline = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False)
    original_price = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="TRY")
    duration_in_days = Column(Integer, nullable=False, default=30)
    is_popular = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    theme_color = Column(String(32), nullable=True)
    icon_name = Column(String(64), nullable=True)
    features = Column(JSON, nullable=False, default=list)
    not_included = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    purchases = relationship("PackagePurchase", back_populates="package")


class PackagePurchase(Base):
    __tablename__ = "package_purchases"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)
    status = Column(Enum(PackageStatus, native_enum=False), nullable=False, default=PackageStatus.ACTIVE)
    purchased_at = Column(DateTime(timezone=True), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    payment_reference = Column(String(255), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="purchases")
    package = relationship("Package", back_populates="purchases", lazy="selectin")

    __table_args__ = (
        Index("ix_package_purchases_user_status_expires", "user_id", "status", "expires_at"),
    )


class ManualPaymentAccount(Base):
    """Банковский счет для оплаты пакета переводом (havale/EFT)."""
    __tablename__ = "manual_payment_accounts"
    id = Column(Integer, primary_key=True)
    bank_name = Column(String(255), nullable=False)
    account_name = Column(String(255), nullable=False)
    iban = Column(String(64), nullable=False)
    account_number = Column(String(64), nullable=True)
    branch_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))
