# --- backend/ptcoach/api/endpoints/__init__.py ---

# Собирает роутеры модулей для регистрации в main.py

from .auth import router as auth_router
from .users import router as users_router
from .packages import router as packages_router
from .paytr import router as paytr_router
from .manual_payments import router as manual_payments_router
from .trainer import router as trainer_router
from .admin import router as admin_router
