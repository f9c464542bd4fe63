"""
Structured logging for the grid engine.

structlog renders key/value events; records are handed to stdlib logging so
exchange adapter libraries that log through `logging` share the same
console and rotating file handlers.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import Processor

_MAX_LOG_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

# Adapter transport libraries are chatty below WARNING
NOISY_LOGGERS = ("asyncio", "websockets", "aiohttp", "urllib3")


def _rotating_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=_MAX_LOG_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    handler.setLevel(level)
    return handler


def _build_handlers(
    level: int, log_dir: Path | None, log_to_console: bool, log_to_file: bool
) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        handlers.append(console)
    if log_to_file:
        directory = log_dir or Path("logs")
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_handler(directory / "gridmaker.log", level))
        handlers.append(_rotating_handler(directory / "error.log", logging.ERROR))
    return handlers


def _build_processors(json_logs: bool, colors: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=colors, exception_formatter=structlog.dev.plain_traceback
            )
        )
    return processors


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    log_to_console: bool = True,
    log_to_file: bool = False,
    json_logs: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root logger for a grid process.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown names fall back to INFO
        log_dir: Where gridmaker.log and error.log rotate (default ./logs)
        log_to_console: Emit to stdout
        log_to_file: Emit to the rotating files in log_dir
        json_logs: One JSON object per line instead of the console renderer
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=_build_processors(json_logs, colors=log_to_console and not log_to_file),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=_build_handlers(level, log_dir, log_to_console, log_to_file),
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; pass __name__."""
    return structlog.get_logger(name)


class log_context:
    """
    Bind key/value pairs to every event logged inside the block.

    GridStrategy wraps each reconciliation pass so order placement and
    cancellation lines carry the strategy id and what triggered the pass:

        with log_context(strategy_id="grid-INDYUSDT-1", trigger="fill"):
            await manager.reconcile(levels, exchange)
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> None:
        structlog.contextvars.bind_contextvars(**self.context)

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
