from __future__ import annotations

import logging
import sys
from typing import Any

import orjson
import structlog
from structlog.typing import EventDict, WrappedLogger

from fibseq.sequence.terms import summarize_term


def summarize_big_ints(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """
    Replace integers wider than 64 bits with a "<N-bit integer>" marker.

    Sequence terms grow without bound. orjson refuses them past 64 bits and
    repr()/str() refuse them past the interpreter's digit limit, so a term
    handed to the logger must never reach the renderer as-is.
    """
    for key, value in event_dict.items():
        if isinstance(value, int) and not isinstance(value, bool):
            event_dict[key] = summarize_term(value)
    return event_dict


def _json_serializer(obj: Any, default: Any) -> str:
    return orjson.dumps(obj, default=default).decode("utf-8")


def configure_logging(*, level: str = "INFO", json: bool = True) -> None:
    """
    Configure structured logging for the whole process.

    Emits one JSON object per line by default; `json=False` switches to
    structlog's console renderer for local runs. Call once at startup.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer: Any = (
        structlog.processors.JSONRenderer(serializer=_json_serializer)
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    processors: list[Any] = [
        # component=tick|lifecycle bound by the runtime threads
        structlog.contextvars.merge_contextvars,

        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),

        # terms: a=, b=, first=, last=, ceiling=
        summarize_big_ints,

        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.dict_tracebacks,

        renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    # uvicorn/fastapi loggers go to the same stream
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def bind_context(**values: Any) -> None:
    """
    Bind fields to every later log entry of the current thread/context,
    e.g. bind_context(component="tick") at the top of the timer thread.
    """
    structlog.contextvars.bind_contextvars(**values)
