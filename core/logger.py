"""Structured logging configuration helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, cast

import structlog
from rich.logging import RichHandler
from structlog.stdlib import BoundLogger

LOG_FILE_NAME = "region_backup_store.jsonl"

_RUN_ID = "unknown"


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _console_handler(processors: list[Any]) -> logging.Handler:
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(),
            foreign_pre_chain=cast(Any, processors),
        )
    )
    return handler


def _json_file_handler(log_dir: Path, processors: list[Any]) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=cast(Any, processors),
        )
    )
    return handler


def configure_logging(
    *,
    run_id: str,
    environment: str,
    log_level: str,
    log_dir: Path = Path("logs"),
) -> None:
    """Route structlog and stdlib records to a rich console (development) or JSON lines.

    Outside development every record lands in ``<log_dir>/region_backup_store.jsonl``
    with the run id bound, so save failures can be traced back to one process.
    """

    global _RUN_ID
    _RUN_ID = run_id

    processors = _shared_processors()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    if environment == "development":
        root_logger.addHandler(_console_handler(processors))
    else:
        root_logger.addHandler(_json_file_handler(log_dir, processors))

    structlog.configure(
        processors=cast(Any, [*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter]),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run_id=run_id)


def get_logger(module_name: str, *, region: str | None = None) -> BoundLogger:
    """Logger bound with module and run id; ``region`` is added when known."""

    context: dict[str, Any] = {"module": module_name, "run_id": _RUN_ID}
    if region is not None:
        context["region"] = region
    return cast(BoundLogger, structlog.get_logger(module_name).bind(**context))
