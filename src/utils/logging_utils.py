import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict, Set

LOGGING_CONF = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "logging.conf")

ACCESS_LOGGER_NAME = "mockapi.access"

_DEFAULT_LOGRECORD_KEYS: Set[str] = set(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Attributes passed through ``extra=`` are collected under ``"extra"``.
    """

    def __init__(self, *, default_fields: Dict[str, Any] | None = None, datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.default_fields = default_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        payload = self._record_to_dict(record)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

    def _record_to_dict(self, record: logging.LogRecord) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
        }
        data.update(self.default_fields)

        extras = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _DEFAULT_LOGRECORD_KEYS and not k.startswith("_")
        }
        if extras:
            data["extra"] = extras
        return data


def setup_logging(log_format: str = "text", conf_path: str | None = None) -> None:
    """Configure logging from logging.conf; optionally switch handlers to JSON output."""
    path = conf_path or LOGGING_CONF
    if os.path.isfile(path):
        logging.config.fileConfig(path, disable_existing_loggers=False)
    else:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger(__name__).warning(f"Logging config not found at {path}, using basicConfig")

    if log_format == "json":
        formatter = JsonFormatter(default_fields={"service": "blacklist-mock-api"})
        for handler in logging.getLogger().handlers:
            handler.setFormatter(formatter)

    # waitress logs every queue depth warning; keep only errors
    logging.getLogger("waitress.queue").setLevel(logging.ERROR)


def format_access_line(
    remote_addr: str | None,
    method: str,
    full_path: str,
    protocol: str,
    status: int,
    content_length: int | None,
    referrer: str | None,
    user_agent: str | None,
    when: datetime | None = None,
) -> str:
    """Return an Apache 'combined' log line."""
    when = when or datetime.now(timezone.utc)
    ts = when.strftime("%d/%b/%Y:%H:%M:%S %z")
    size = "-" if content_length is None else str(content_length)
    return (
        f'{remote_addr or "-"} - - [{ts}] "{method} {full_path} {protocol}" '
        f'{status} {size} "{referrer or "-"}" "{user_agent or "-"}"'
    )
