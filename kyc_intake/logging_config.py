"""structlog setup producing key=value lines on stderr."""

import logging
import sys

import structlog

SERVICE = "kyc-intake"
SENSITIVE_KEYS = ("password", "secret", "token")


def add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE)
    return event_dict


def redact_secrets(logger, method_name, event_dict):
    for key in event_dict:
        if any(s in key.lower() for s in SENSITIVE_KEYS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            add_service,
            redact_secrets,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["ts", "level", "service", "event"], drop_missing=True
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name=None):
    return structlog.get_logger(name)
