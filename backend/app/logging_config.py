import json
import logging
import logging.handlers
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Context variables for correlation tracking
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
batch_id_var: ContextVar[str | None] = ContextVar("batch_id", default=None)
entity_id_var: ContextVar[str | None] = ContextVar("entity_id", default=None)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def generate_batch_id() -> str:
    return f"batch-{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> str | None:
    """Get correlation ID from current context."""
    return correlation_id_var.get()


def clear_context():
    """Clear all context variables."""
    correlation_id_var.set(None)
    batch_id_var.set(None)
    entity_id_var.set(None)


class StructuredJSONFormatter(logging.Formatter):
    """
    JSON formatter with correlation ID and batch context support.

    Produces logs with:
    - timestamp (ISO 8601)
    - level
    - logger name
    - message
    - correlation_id, batch_id, entity_id (if set)
    - module, function, line
    - exception (if present)
    - extra data (if provided)
    """

    STANDARD_ATTRS = {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "extra_data",
        "message",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, var in (
            ("correlation_id", correlation_id_var),
            ("batch_id", batch_id_var),
            ("entity_id", entity_id_var),
        ):
            value = var.get()
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data") and record.extra_data:
            log_data["extra"] = record.extra_data

        # Custom attributes passed through `extra=`
        for key, value in record.__dict__.items():
            if key in self.STANDARD_ATTRS or key.startswith("_"):
                continue
            # Empty extras must not hide the context values
            if value is None and key in log_data:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with color support."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)

        context_parts = []
        correlation_id = correlation_id_var.get()
        if correlation_id:
            context_parts.append(f"cid={correlation_id}")
        batch_id = batch_id_var.get()
        if batch_id:
            context_parts.append(f"batch={batch_id}")
        entity_id = entity_id_var.get()
        if entity_id:
            context_parts.append(f"entity={entity_id}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        formatted = (
            f"{color}{timestamp} {record.levelname:8}{self.RESET} "
            f"{record.name}{context_str} - {record.getMessage()}"
        )

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: str, enable_console: bool = True) -> None:
    """
    Set up structured logging with file and optional console output.

    Creates separate log files for:
    - api.log: API and application logs
    - regeneration.log: batch orchestration and generation calls
    - errors.log: All error-level logs
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    json_formatter = StructuredJSONFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    api_handler = _rotating_handler(log_path / "api.log", logging.INFO, json_formatter)
    api_handler.addFilter(lambda record: record.name.startswith(("app", "uvicorn")))

    regeneration_handler = _rotating_handler(
        log_path / "regeneration.log", logging.INFO, json_formatter
    )
    regeneration_handler.addFilter(
        lambda record: record.name.startswith(
            ("app.domains.regeneration", "app.domains.generation")
        )
    )

    error_handler = _rotating_handler(log_path / "errors.log", logging.ERROR, json_formatter)

    root_logger.addHandler(api_handler)
    root_logger.addHandler(regeneration_handler)
    root_logger.addHandler(error_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(ConsoleFormatter())
        root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for setting logging context.

    Usage:
        with LogContext(batch_id="batch-1", entity_id="584"):
            logger.info("This log will carry batch_id and entity_id")
    """

    def __init__(
        self,
        correlation_id: str | None = None,
        batch_id: str | None = None,
        entity_id: str | None = None,
        auto_generate_correlation_id: bool = False,
    ):
        self.correlation_id = correlation_id
        self.batch_id = batch_id
        self.entity_id = entity_id
        self.auto_generate_correlation_id = auto_generate_correlation_id

        self._prev_correlation_id: str | None = None
        self._prev_batch_id: str | None = None
        self._prev_entity_id: str | None = None

    def __enter__(self):
        self._prev_correlation_id = correlation_id_var.get()
        self._prev_batch_id = batch_id_var.get()
        self._prev_entity_id = entity_id_var.get()

        if self.correlation_id:
            correlation_id_var.set(self.correlation_id)
        elif self.auto_generate_correlation_id and not self._prev_correlation_id:
            correlation_id_var.set(generate_correlation_id())

        if self.batch_id:
            batch_id_var.set(self.batch_id)
        if self.entity_id:
            entity_id_var.set(self.entity_id)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        correlation_id_var.set(self._prev_correlation_id)
        batch_id_var.set(self._prev_batch_id)
        entity_id_var.set(self._prev_entity_id)
        return False
