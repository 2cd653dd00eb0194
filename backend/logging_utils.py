import datetime as dt
import json
import logging
import logging.config
from typing import Any, Dict, Optional, Set

# Attributes every LogRecord carries; anything else came in through ``extra=``.
LOG_RECORD_BUILTIN_ATTRS: Set[str] = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module", "msecs",
    "message", "msg", "name", "pathname", "process", "processName",
    "relativeCreated", "stack_info", "taskName", "thread", "threadName",
}

DEFAULT_FMT_KEYS = {
    "level": "levelname",
    "logger": "name",
    "module": "module",
    "line": "lineno",
}


class JSONFormatter(logging.Formatter):
    def __init__(self, *, fmt_keys: Optional[Dict[str, str]] = None, datefmt: Optional[str] = None):
        super().__init__(datefmt=datefmt)
        self.fmt_keys = fmt_keys if fmt_keys is not None else dict(DEFAULT_FMT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._prepare_log_dict(record), default=str)

    def _prepare_log_dict(self, record: logging.LogRecord) -> Dict[str, Any]:
        message_dict: Dict[str, Any] = {
            "message": record.getMessage(),
            "timestamp": self.formatTime(record, self.datefmt)
            if self.datefmt
            else dt.datetime.fromtimestamp(record.created, tz=dt.timezone.utc).isoformat(),
        }
        if record.exc_info:
            message_dict["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            message_dict["stack_info"] = self.formatStack(record.stack_info)

        for key, attr in self.fmt_keys.items():
            value = getattr(record, attr, None)
            if value is not None:
                message_dict[key] = value

        # Extra fields, e.g. logger.info("...", extra={"room_id": room_id}).
        for key, value in record.__dict__.items():
            if key not in LOG_RECORD_BUILTIN_ATTRS and key not in message_dict:
                message_dict[key] = value
        return message_dict


def build_logging_config(level: str = "INFO", json_output: bool = False) -> Dict[str, Any]:
    formatter = "json" if json_output else "simple"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {"format": "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"},
            "json": {"()": "backend.logging_utils.JSONFormatter"},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "backend": {"level": level, "handlers": ["stdout"], "propagate": False},
            "partyhub": {"level": level, "handlers": ["stdout"], "propagate": False},
        },
        "root": {"level": "WARNING", "handlers": ["stdout"]},
    }


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    try:
        logging.config.dictConfig(build_logging_config(level.upper(), json_output))
    except (ValueError, TypeError) as exc:
        logging.basicConfig(level=logging.INFO, format="%(levelname)-8s [%(name)s] %(message)s")
        logging.getLogger("backend.logging_utils").error("Logging configuration failed: %s", exc)
