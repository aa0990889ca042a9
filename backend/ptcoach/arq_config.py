# backend/ptcoach/arq_config.py
from arq.connections import RedisSettings
from ptcoach.core.config import settings
# Единый источник настроек Redis для ARQ.
# База №4, чтобы не пересекаться с limiter'ом.
redis_settings = RedisSettings(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    database=4
)
