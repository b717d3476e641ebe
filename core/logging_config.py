"""
Structlog logging configuration

Stdlib logging and structlog share one processor chain; buyer email, phone and CPF
are masked before rendering, so call sites can pass them as plain context fields.
"""
import json
import logging
import re
from typing import Any, List

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings


# third-party loggers too chatty under DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")

_EMAIL_KEYS = {"email", "customer_email", "to"}
_PHONE_KEYS = {"phone", "customer_phone"}
_HIDDEN_KEYS = {"cpf", "customer_cpf", "document", "api_key", "api_token", "app_id"}
_NON_DIGIT = re.compile(r"\D")


def mask_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


def mask_phone(value: str) -> str:
    digits = _NON_DIGIT.sub("", value)
    return f"***{digits[-4:]}" if len(digits) > 4 else "***"


def mask_pii(_, __, event_dict: dict) -> dict:
    """structlog processor: mask personal data fields."""
    for key in list(event_dict):
        value = event_dict[key]
        if not isinstance(value, str) or not value:
            continue
        if key in _HIDDEN_KEYS:
            event_dict[key] = "***"
        elif key in _EMAIL_KEYS and "@" in value:
            event_dict[key] = mask_email(value)
        elif key in _PHONE_KEYS:
            event_dict[key] = mask_phone(value)
    return event_dict


def add_service(_, __, event_dict: dict) -> dict:
    event_dict.setdefault("service", settings.PROJECT_NAME)
    event_dict.setdefault("env", settings.ENVIRONMENT)
    return event_dict


def get_renderer() -> Any:
    """Colored console under DEBUG, JSON elsewhere (non-ASCII kept as-is)."""
    if settings.DEBUG:
        return ConsoleRenderer(colors=True)

    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)

    return JSONRenderer(serializer=_dumps)


def configure_logging() -> None:
    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        add_service,
        mask_pii,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[ProcessorFormatter.remove_processors_meta, get_renderer()],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
