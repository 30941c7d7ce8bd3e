# finpet/core/logging_config.py
import logging
import sys
import structlog


def setup_logging(log_level_str: str = "INFO", env_type: str = "dev"):
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    is_dev = env_type.lower() == "dev"

    # Common processors for all environments
    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.dev.ConsoleRenderer() if is_dev else structlog.processors.JSONRenderer()

    root_logger = logging.getLogger()
    # Remove any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Logs from other libraries (uvicorn, pymongo) go through the same renderer
    structlog_handler = logging.StreamHandler(sys.stdout)
    structlog_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    ))

    root_logger.addHandler(structlog_handler)
    root_logger.setLevel(log_level)

    logging.getLogger("pymongo").setLevel(logging.WARNING)

    log = structlog.get_logger("logging_config")
    log.info("Logging configured", log_level=log_level_str,
             renderer="ConsoleRenderer" if is_dev else "JSONRenderer")
