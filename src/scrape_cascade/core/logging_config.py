"""structlog-backed logging for the scrape cascade.

Modules log through the standard library (``logging.getLogger(__name__)``);
:func:`configure_logging` routes those records through a structlog
``ProcessorFormatter`` onto stderr, so the CLI keeps stdout for results.

Every record carries ``timestamp``, ``level``, ``logger`` and ``event``.
Records emitted while a batch runs also carry ``batch_id``, taken from
:data:`batch_id_var`.  Provider keys that travel in query strings (the
ZenRows ``apikey``, for instance) are masked before rendering.
"""

from __future__ import annotations

import logging
import re
import sys
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

batch_id_var: ContextVar[str | None] = ContextVar("batch_id", default=None)
"""Set by the orchestrator for the duration of one ``scrape`` call."""

# key=value pairs in URLs or messages whose value is a credential
_CREDENTIAL_PARAM = re.compile(r"(?i)\b(apikey|api_key|token|access_token)=([^&\s\"']+)")

_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "trafilatura")


def _mask_credentials(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    event = event_dict.get("event")
    if isinstance(event, str) and "=" in event:
        event_dict["event"] = _CREDENTIAL_PARAM.sub(r"\1=***", event)
    return event_dict


def _add_batch_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    batch_id = batch_id_var.get()
    if batch_id is not None:
        event_dict.setdefault("batch_id", batch_id)
    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """Install the stderr handler and configure structlog.

    JSON lines are rendered at every level except ``DEBUG``, which switches to
    the coloured console renderer and leaves the HTTP client loggers audible.
    Calling it again replaces the previous root handlers.

    Args:
        log_level: Level name, case-insensitive.  Unknown names mean ``INFO``.
    """
    level_name = log_level.upper()
    debug = level_name == "DEBUG"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_batch_id,
        _mask_credentials,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    renderer: Processor = (
        structlog.dev.ConsoleRenderer(colors=True) if debug else structlog.processors.JSONRenderer()
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    quiet_level = logging.NOTSET if debug else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
