"""Structured logging for tracker runs.

Tracker and store events are structlog events rendered by stdlib handlers,
one handler per configured output, each with its own level and format.

A run is one CLI invocation, or any orchestrator pass that opts in with
``run_context()``. Everything logged inside it carries the run id and the
fields bound to the run (``command``, ``item_type``), so a reindex pass can
be followed from ``tracking_started`` to the last ``items_indexed``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from indexledger.config.models import LoggingConfig, LogOutputConfig

# Would otherwise echo every ledger statement
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def new_run_id() -> str:
    return uuid4().hex[:12]


@contextmanager
def run_context(run_id: str | None = None, **fields: Any) -> Generator[str, None, None]:
    """Bind a run id and ``fields`` to every event logged inside the block.

    Context left over from a previous run is dropped on entry and on exit.
    Yields the run id.
    """
    rid = run_id or new_run_id()
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run_id=rid, **fields)
    try:
        yield rid
    finally:
        structlog.contextvars.clear_contextvars()


def bind_run_fields(**fields: Any) -> None:
    """Add fields to the current run once they are known."""
    structlog.contextvars.bind_contextvars(**fields)


def _level(name: str | None, default: int) -> int:
    if name is None:
        return default
    return logging.getLevelNamesMapping().get(name.upper(), default)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]


def _renderer(output: LogOutputConfig) -> structlog.types.Processor:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    stream = sys.stdout if output.destination == "stdout" else sys.stderr
    colors = output.destination in ("stderr", "stdout") and stream.isatty()
    return structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)


def _open_output(output: LogOutputConfig) -> logging.Handler:
    if output.destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    if output.destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(output.destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Route structlog events to the outputs of ``config``.

    Without a config a single stderr output is built from ``json_format`` and
    ``level``. Calling again replaces the handlers of the previous call.
    """
    from indexledger.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level(config.level, logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.setLevel(root_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for output in config.outputs:
        handler = _open_output(output)
        handler.setLevel(_level(output.level, root_level))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=_renderer(output),
                foreign_pre_chain=shared,
            )
        )
        root.addHandler(handler)
