# backend/ptcoach/core/logging.py
import logging
import sys
import structlog

def configure_logging(level: int = logging.INFO):
    """Настраивает structlog для вывода структурированных JSON логов."""

    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(ensure_ascii=False),
        foreign_pre_chain=shared_processors,
    )

    # basicConfig уже повесил свой обработчик; заменяем его JSON-форматтером,
    # чтобы строки не дублировались
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # Пример использования:
    # log = structlog.get_logger(__name__)
    # log.info("paytr.checkout.started", user_id=1, package_id=2)
