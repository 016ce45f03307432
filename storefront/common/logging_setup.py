import json
import logging
import re
import sys
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from typing import Any, Dict, Optional
from storefront.config.admin_config import admin_config
from storefront.common.constants import request_id_ctx

ENV = admin_config.ENV.lower()

SENSITIVE_KEYS = (
    "password", "secret", "token", "authorization", "api_key",
    "refresh_token", "id_token", "signature", "password_hash",
)

# attributes every LogRecord carries; anything else on record.__dict__ came from `extra`
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime", "taskName"}


def sanitize_message_text(msg: str) -> str:
    """Best-effort redaction of `key=value` / `"key": "value"` pairs inside free text."""
    out = msg
    for key in SENSITIVE_KEYS:
        out = re.sub(rf'("{key}"\s*:\s*")[^"]+(")', r'\1[REDACTED]\2', out, flags=re.IGNORECASE)
        out = re.sub(rf'({key}\s*[=:]\s*)[\w\-\./+]+', r'\1[REDACTED]', out, flags=re.IGNORECASE)
    return out


def mask_email(value: Any) -> str:
    text = str(value)
    local, sep, domain = text.partition("@")
    if not sep:
        return text[:2] + "***"
    return f"{local[:2]}***@{domain}"


class JSONFormatter(logging.Formatter):
    """Structured JSON formatter for non-dev environments"""
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "env": ENV,
            "service": admin_config.SERVICE_NAME,
        }

        rid = getattr(record, "request_id", None) or request_id_ctx.get()
        if rid:
            log_data["request_id"] = rid

        for k, v in record.__dict__.items():
            if k in _RECORD_ATTRS or k.startswith("_"):
                continue
            if k in SENSITIVE_KEYS:
                v = "[REDACTED]"
            elif k == "email":
                v = mask_email(v)
            log_data[k] = v

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["event"] = sanitize_message_text(log_data["event"])
        return json.dumps(log_data, default=str)


class SecurityFilter(logging.Filter):
    """Redact sensitive values in the rendered message before it reaches a handler"""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = sanitize_message_text(record.getMessage())
            record.args = ()
        else:
            record.msg = sanitize_message_text(str(record.msg))
        return True


_queue_listener: Optional[QueueListener] = None


def setup_logging() -> logging.Logger:
    """Route every record through a queue so request handlers never block on stdout. Call once at startup."""
    global _queue_listener

    if _queue_listener is not None:
        shutdown_logging()

    log_level = logging.DEBUG if ENV == "dev" else logging.INFO

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    q: Queue = Queue(-1)
    qh = QueueHandler(q)

    console_handler = logging.StreamHandler(sys.stdout)
    if ENV != "dev":
        console_handler.setFormatter(JSONFormatter())
        console_handler.addFilter(SecurityFilter())
    else:
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)8s] %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root.setLevel(log_level)
    root.addHandler(qh)

    _queue_listener = QueueListener(q, console_handler, respect_handler_level=True)
    _queue_listener.start()

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING if ENV != "dev" else logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("storefront.app")


def shutdown_logging() -> None:
    global _queue_listener
    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None


class ContextLogger:
    """Thin wrapper that stamps the current request id into every record's `extra`."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _with_ctx(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        merged = dict(extra or {})
        rid = request_id_ctx.get()
        if rid:
            merged.setdefault("request_id", rid)
        return merged

    def _log(self, level: int, msg: str, *args, **kwargs):
        kwargs["extra"] = self._with_ctx(kwargs.pop("extra", None))
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)


def get_logger(name: str = "storefront.app") -> ContextLogger:
    return ContextLogger(name)
