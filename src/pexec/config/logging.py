"""structlog configuration for pexec.

Logs always go to stderr; stdout carries pod output and the summary line.
Records from the kubernetes client (stdlib ``logging``) and from pexec's
own structlog loggers pass through the same ``ProcessorFormatter``, so
``--log-json`` yields one JSON object per line for both.

Every record carries the thread name. Per-pod tasks run on ``pexec_N``
worker threads, which ties a task event back to its worker.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_QUIET_LOGGERS = ("kubernetes", "urllib3", "websocket")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            {structlog.processors.CallsiteParameter.THREAD_NAME}
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _stderr_handler(stream: TextIO, *, log_json: bool) -> logging.Handler:
    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    return handler


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib logging to one stderr handler.

    Args:
        verbose: ``pexec.*`` loggers at DEBUG instead of WARNING.
        log_json: JSON lines instead of the console renderer.

    Client-library loggers stay at WARNING either way; their DEBUG output
    includes request bodies and websocket frames.
    """
    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_stderr_handler(sys.stderr, log_json=log_json))
    root.setLevel(logging.WARNING)

    logging.getLogger("pexec").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
