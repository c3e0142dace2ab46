"""
Logging setup for the Medical Document Explainer

Every record carries the processing cycle it belongs to, so the interleaved
output of concurrent transforms and answers can be told apart.
"""
import json
import logging
import logging.handlers
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from config import settings

SERVICE_NAME = "med-doc-explainer"

# Set per task; asyncio tasks and to_thread workers inherit it
_current_cycle: ContextVar[Optional[int]] = ContextVar("current_cycle", default=None)

# Attributes every LogRecord has; anything else was passed through ``extra``
_RECORD_ATTRIBUTES = set(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message", "asctime", "service", "cycle"
}

_NOISY_LIBRARIES = {
    "pdfminer": logging.WARNING,
    "PyPDF2": logging.ERROR,
    "urllib3": logging.WARNING,
    "markdown_it": logging.WARNING,
    "httpx": logging.WARNING,
}


@contextmanager
def cycle_context(cycle: Optional[int]) -> Iterator[None]:
    """Tag every record logged inside the block with ``cycle``"""
    token = _current_cycle.set(cycle)
    try:
        yield
    finally:
        _current_cycle.reset(token)


def current_cycle() -> Optional[int]:
    return _current_cycle.get()


class CycleContextFilter(logging.Filter):
    """Stamps records with the service name and the active cycle"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = SERVICE_NAME
        # An explicit ``extra={"cycle": ...}`` wins over the context
        if getattr(record, "cycle", None) is None:
            cycle = _current_cycle.get()
            record.cycle = "-" if cycle is None else cycle
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": getattr(record, "service", SERVICE_NAME),
            "cycle": getattr(record, "cycle", "-"),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the root logger

    Args:
        log_level: Logging level name, defaults to ``settings.log_level``
        log_format: "structured" for JSON lines, anything else for plain text
        log_file: Optional path of a rotating log file
        max_file_size: Bytes before the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The root logger
    """
    log_level = log_level or settings.log_level
    log_format = log_format or settings.log_format
    log_file = log_file or settings.log_file
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "structured":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s [cycle %(cycle)s] %(name)s: %(message)s")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    context_filter = CycleContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        handler.setLevel(level)
        root_logger.addHandler(handler)

    for name, library_level in _NOISY_LIBRARIES.items():
        logging.getLogger(name).setLevel(library_level)

    root_logger.debug(f"Logging configured: level={log_level} format={log_format} file={log_file}")
    return root_logger


def get_performance_logger() -> logging.Logger:
    """Logger for operation timings, kept out of the main stream"""
    perf_logger = logging.getLogger("performance")
    if not perf_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s PERFORMANCE [cycle %(cycle)s] %(message)s"))
        handler.addFilter(CycleContextFilter())
        perf_logger.addHandler(handler)
        perf_logger.setLevel(logging.INFO)
        perf_logger.propagate = False
    return perf_logger


def get_session_logger() -> logging.Logger:
    return logging.getLogger("session")


def log_session_event(event: str, level: int = logging.INFO, **fields) -> None:
    """
    Record a session transition such as ``cycle_started`` or ``answer_recorded``.

    Fields are attached as ``extra`` and appear under "extra" in structured output.
    """
    details = " ".join(f"{key}={value}" for key, value in fields.items())
    message = f"{event} {details}".rstrip()
    get_session_logger().log(level, message, extra={"event": event, **fields})


def log_request(method: str, path: str, status_code: int, duration_ms: int) -> None:
    """Access log line, at a level that follows the status class"""
    level = logging.ERROR if status_code >= 500 else logging.WARNING if status_code >= 400 else logging.INFO
    logging.getLogger("api").log(
        level,
        f"{method} {path} -> {status_code} ({duration_ms}ms)",
        extra={"method": method, "path": path, "status_code": status_code, "duration_ms": duration_ms}
    )
