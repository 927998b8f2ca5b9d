import inspect
import json
import logging
import os
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional


# Propagated across awaits so every record of one run carries the same ids
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

# Names of loggers set up through configure_logging, in setup order
_configured_loggers: Dict[str, None] = {}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "name": record.name,
            "severity": record.levelname,
            "message": record.getMessage(),
        }
        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_record["correlation_id"] = correlation_id
        run_id = run_id_var.get()
        if run_id:
            log_record["run_id"] = run_id

        if hasattr(record, "fields"):
            log_record.update(record.fields)
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(log_record, default=str)


class ContextLogger:
    """Thin wrapper around stdlib logger that supports structured kwargs.

    Allows calls like ``logger.info("scan:done", prefix=p, count=3)``. In text
    mode the fields are appended as ``key=value`` pairs; the JSON formatter
    emits them as top-level keys.
    """

    def __init__(self, base: logging.Logger):
        self._base = base

    @property
    def name(self) -> str:
        return self._base.name

    def setLevel(self, level: int) -> None:
        self._base.setLevel(level)

    def isEnabledFor(self, level: int) -> bool:
        return self._base.isEnabledFor(level)

    def _prepare(self, msg: str, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        std_kwargs: Dict[str, Any] = {}
        for key in ("exc_info", "stack_info", "stacklevel", "extra"):
            if key in kwargs:
                std_kwargs[key] = kwargs.pop(key)

        if kwargs:
            msg = f"{msg} - " + " ".join(f"{key}={value}" for key, value in kwargs.items())
            extra = dict(std_kwargs.get("extra") or {})
            extra["fields"] = kwargs
            std_kwargs["extra"] = extra
        return {"msg": msg, "std": std_kwargs}

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.debug(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.info(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.warning(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.error(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        prepared = self._prepare(msg, kwargs)
        self._base.error(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]


def _standardize_logger_name(name: str) -> str:
    """Ensure logger name follows `component:file` when possible.

    Names that already contain a colon are returned unchanged. Otherwise the
    component is inferred from the caller's location under ``services/`` or
    ``libs/``.
    """
    if ":" in name:
        return name

    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    while caller and caller.f_code.co_filename == __file__:
        caller = caller.f_back
    if not caller:
        return name

    p = Path(caller.f_code.co_filename).resolve()
    parts = p.parts
    file_part = p.stem if p.name != "__init__.py" else p.parent.name
    for root in ("services", "libs"):
        if root in parts:
            i = parts.index(root)
            if i + 1 < len(parts):
                return f"{parts[i + 1]}:{file_part}"
    return name


def configure_logging(
    service_name: str,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> ContextLogger:
    """Configure logging and return a ContextLogger that accepts kwargs.

    Level and format default to the ``LOG_LEVEL`` and ``LOG_FORMAT``
    environment variables (``INFO`` and plain text when unset).

    Usage:
        logger = configure_logging("pattern-matcher:scanner")
        logger.info("scan:start", prefix=prefix)
    """
    service_name = _standardize_logger_name(service_name)
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL") or "INFO"
    if log_format is None:
        log_format = os.getenv("LOG_FORMAT") or None
    if log_format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            log_format or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    base = logging.getLogger(service_name)
    for handler in base.handlers[:]:
        base.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    base.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    base.addHandler(handler)
    base.propagate = False
    _configured_loggers[service_name] = None

    return ContextLogger(base)


def apply_logging_settings(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Re-apply level and format to every logger configured so far.

    Module-level loggers are created at import, possibly before the
    service's settings are loaded; call this once settings are known.
    """
    for name in list(_configured_loggers):
        configure_logging(name, log_level, log_format)


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Sets the correlation ID for the current context."""
    correlation_id_var.set(correlation_id)


def set_run_id(run_id: Optional[str]) -> None:
    """Sets the orchestrator run ID for the current context."""
    run_id_var.set(run_id)
