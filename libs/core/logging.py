from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator

import structlog

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(service_name: str, level: str | None = None) -> None:
    logging.basicConfig(level=_resolve_level(level))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
    logger = structlog.get_logger(service=service_name)
    logger.info("logging_configured")


def resolve_request_id(candidate: str | None) -> str:
    """Reuse a caller-supplied request id when it is sane, otherwise mint one."""
    if isinstance(candidate, str):
        trimmed = candidate.strip()
        if trimmed and len(trimmed) <= _MAX_REQUEST_ID_LENGTH and trimmed.isprintable():
            return trimmed
    return uuid.uuid4().hex


@contextmanager
def bind_context(**values: Any) -> Iterator[None]:
    bound = {key: value for key, value in values.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def log_event(logger: structlog.BoundLogger, event_type: str, payload: Dict[str, Any]) -> None:
    logger.info(event_type, **payload)


def get_logger(service_name: str) -> structlog.BoundLogger:
    return structlog.get_logger(service=service_name)
