from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence

from starlette.requests import Request

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "method",
    "path",
    "status",
    "resource",
    "document_id",
    "error_count",
    "reason",
)

_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


class ContextualFormatter(logging.Formatter):
    """Formatter appending known ``extra`` attributes as ``key=value`` pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts = [
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        ]
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def request_context(request: Request, **extra: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping used when logging about an HTTP request."""
    context: Dict[str, Any] = {"method": request.method, "path": request.url.path}
    context.update({key: value for key, value in extra.items() if value is not None})
    return context


def _file_handlers(log_dir: str, log_level: str | int) -> Dict[str, Dict[str, Any]]:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return {
        "info_file": {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "contextual",
            "filename": str(directory / "info.log"),
        },
        "error_file": {
            "class": "logging.FileHandler",
            "level": "ERROR",
            "formatter": "contextual",
            "filename": str(directory / "error.log"),
        },
    }


def configure_logging(level: str | int | None = None) -> None:
    """Configure application-wide logging with contextual formatting.

    Records always go to stderr. When ``LOG_DIR`` is set, ``info.log`` and
    ``error.log`` files are written there as well.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level

    handlers: Dict[str, Dict[str, Any]] = {
        "default": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "contextual",
        }
    }
    if settings.log_dir:
        handlers.update(_file_handlers(settings.log_dir, log_level))

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": _FORMAT,
                    "datefmt": _DATE_FORMAT,
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": log_level},
        }
    )

    _configured = True
