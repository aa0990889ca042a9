# --- backend/ptcoach/db/models/__init__.py ---

# Этот файл собирает все модели из подмодулей в один неймспейс ptcoach.db.models
# Это позволяет использовать привычный импорт: from ptcoach.db.models import User

from .user import *
from .package import *
from .payment import *
from .system import *
