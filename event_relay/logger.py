"""Logging configuration for event-relay.

Supports two logging formats:
- JSON logging (production): Structured logs for CloudWatch / log aggregation
- Console logging (development): Human-readable logs with stacktraces

Configure via EVENT_RELAY_LOG_FORMAT_JSON environment variable (default: True).
"""

import logging
import sys

import structlog

from event_relay.config import settings

# botocore logs every request at DEBUG
EXCLUDED_LOGGERS = ("botocore", "boto3", "urllib3")


def setup_logging(
    log_level: str | None = None,
    *,
    json_format: bool | None = None,
    extra_processors: list[structlog.types.Processor] | None = None,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Overrides settings.log_level
        json_format: Overrides settings.log_format_json
        extra_processors: Processors inserted before rendering

    Returns:
        Logger for the event_relay package
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    use_json = settings.log_format_json if json_format is None else json_format

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        *(extra_processors or []),
    ]
    renderer: structlog.types.Processor
    if use_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdlib records (boto, sentry) go through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for logger_name in EXCLUDED_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    return structlog.get_logger("event_relay")
