from __future__ import annotations

import logging
import logging.config
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from thrift_search.core.context import get_request_id, get_request_path

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s %(path)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.path = get_request_path() or "-"
        return True


def _build_logging_config(level: str) -> Dict[str, Any]:
    level = (level or "INFO").upper()
    handler = {"handlers": ["default"], "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {
                "()": RequestContextFilter,
            }
        },
        "formatters": {
            "json": {
                "()": jsonlogger.JsonFormatter,
                "fmt": _LOG_FORMAT,
                "datefmt": _DATE_FORMAT,
                "rename_fields": {"levelname": "level", "name": "logger"},
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "filters": ["request_context"],
            }
        },
        "loggers": {
            "uvicorn": dict(handler, level="INFO"),
            "uvicorn.error": dict(handler, level="INFO"),
            "uvicorn.access": dict(handler, level="WARNING"),
            "httpx": dict(handler, level="WARNING"),
            "thrift_search": dict(handler),
        },
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(_build_logging_config(level))
