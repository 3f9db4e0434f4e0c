from __future__ import annotations

import json
import logging
from logging.config import dictConfig
from traceback import format_exception

from .env import Env, get_env, pick

STACK_LIMIT = 4000


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter for prod logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, object] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
        }

        # Document context, when the caller passes it via extra=
        for key in ("doc_id", "id_cliente", "id_expediente"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        http_ctx = {
            k: v for k, v in {
                "method": getattr(record, "http_method", None),
                "path": getattr(record, "path", None),
                "status": getattr(record, "status_code", None),
            }.items() if v is not None
        }
        if http_ctx:
            payload["http"] = http_ctx

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            exc_message = str(record.exc_info[1]) if record.exc_info[1] else None
            stack = "".join(format_exception(*record.exc_info))

            err_obj: dict[str, object] = {}
            if exc_type:
                err_obj["type"] = exc_type
            if exc_message:
                err_obj["message"] = exc_message
            err_obj["stack"] = stack[:STACK_LIMIT] + ("...(truncated)" if len(stack) > STACK_LIMIT else "")

            payload["error"] = err_obj

        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: str | None, env: Env) -> str:
    if level:
        return level.upper()
    return pick(prod="INFO", nonprod="DEBUG", env=env)


def _resolve_format(fmt: str | None, env: Env) -> str:
    if fmt:
        return fmt.lower()
    return "json" if env is Env.PROD else "plain"


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    env = get_env()
    level = _resolve_level(level, env)
    formatter_name = "json" if _resolve_format(fmt, env) == "json" else "plain"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,  # keep uvicorn & friends
            "formatters": {
                "plain": {
                    "format": "%(asctime)s %(levelname)-5s [pid:%(process)d] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                },
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": formatter_name,
                }
            },
            "root": {
                "level": level,
                "handlers": ["stream"],
            },
            "loggers": {
                "uvicorn": {"level": "INFO", "handlers": [], "propagate": True},
                "uvicorn.error": {"level": "INFO", "handlers": [], "propagate": True},
                "uvicorn.access": {"level": "INFO", "handlers": [], "propagate": True},
                "pymongo": {"level": "WARNING", "handlers": [], "propagate": True},
            },
        }
    )
