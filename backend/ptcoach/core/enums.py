# backend/ptcoach/core/enums.py
import enum

class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"
    CLIENT = "CLIENT"

class PackageStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

# Статусы, при которых покупка может давать доступ
ACCESS_STATUSES = (PackageStatus.ACTIVE, PackageStatus.PENDING)

class PaytrMode(str, enum.Enum):
    TEST = "TEST"
    LIVE = "LIVE"

class PaytrLogAction(str, enum.Enum):
    PAYMENT_INITIATED = "payment.initiated"
    PAYMENT_COMPLETED = "payment.completed"
    PAYMENT_CALLBACK = "payment.callback"
    SETTINGS_UPDATED = "settings.updated"
    SETTINGS_TEST = "settings.test"

class PaytrLogStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ERROR = "error"
    COMPLETED = "completed"

class LogLevel(str, enum.Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    AUDIT = "AUDIT"
