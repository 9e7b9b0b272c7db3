from __future__ import annotations

import json
import logging
from logging import LogRecord
from typing import Any, Dict, Mapping

from loguru import logger
from opentelemetry import trace


_STDLIB_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Claimant identifiers that may ride along in bound context but never reach the sink verbatim.
REDACTED_FIELDS = frozenset({"account_number", "phone_number", "real_name", "bank_account"})


def redact(extra: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in extra.items():
        if key in REDACTED_FIELDS and value:
            text = str(value)
            cleaned[key] = f"***{text[-4:]}" if len(text) > 4 else "***"
        else:
            cleaned[key] = value
    return cleaned


class InterceptHandler(logging.Handler):
    """Forward stdlib records (uvicorn, sqlalchemy, alembic) to Loguru."""

    def emit(self, record: LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        context = {key: value for key, value in vars(record).items() if key not in _STDLIB_RECORD_FIELDS}
        message = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.bind(stdlib_logger=record.name, **context).opt(depth=6, exception=record.exc_info).log(
            level, message
        )


class JsonLogSink:
    """One JSON object per line, tagged with service metadata and the active span."""

    def __init__(self, *, service_name: str, environment: str, version: str) -> None:
        self._static = {"service": service_name, "environment": environment, "version": version}

    def __call__(self, message: "logger.Message") -> None:
        print(json.dumps(self.render(message.record), default=str))

    def render(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name.lower(),
            "message": record["message"],
            "logger": record["name"],
            **self._static,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            payload["trace_id"] = format(span_context.trace_id, "032x")
            payload["span_id"] = format(span_context.span_id, "016x")

        payload.update(redact(record["extra"]))

        exception = record["exception"]
        if exception is not None and exception.type is not None:
            payload["error_type"] = exception.type.__name__
            payload["error"] = str(exception.value)
        return payload


def configure_logging(*, service_name: str, environment: str, version: str) -> None:
    """Route Loguru and stdlib logging through the JSON sink."""

    logger.remove()
    logger.add(
        JsonLogSink(service_name=service_name, environment=environment, version=version),
        backtrace=False,
        diagnose=False,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
