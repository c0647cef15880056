"""
TradeDesk - Structured Logging Configuration

structlog setup for the engine. Every line carries the deployment env;
lines emitted while a symbol is being analyzed also carry the symbol and
a request id, including lines logged from concurrently running agents.
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from tradedesk.config import Settings, get_settings

# Chatty client libraries used by the LLM gateway
QUIET_LOGGERS = ("httpx", "httpcore", "groq", "langchain_core")


def _env_tagger(env: str) -> Processor:
    def add_env(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("env", env)
        return event_dict

    return add_env


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog and stdlib logging from settings.

    Debug mode renders colored console output; otherwise one JSON object
    per line.
    """
    settings = settings or get_settings()
    log_level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _env_tagger(settings.env),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger with optional initial context.

    Args:
        name: Logger name (usually __name__)
        **initial_context: Key-value pairs bound to every event

    Returns:
        Bound logger instance
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def get_agent_logger(agent_type: str | None = None) -> structlog.BoundLogger:
    """Get logger for agent components, optionally tagged with the agent type."""
    if agent_type is None:
        return get_logger("tradedesk.agents", component="agents")
    return get_logger("tradedesk.agents", component="agents", agent_type=agent_type)


@contextmanager
def analysis_context(symbol: str, request_id: str | None = None) -> Iterator[str]:
    """
    Bind symbol and request id to all log events inside the block.

    Context variables are copied into tasks created inside the block, so
    agent tasks started by asyncio.gather inherit the binding.

    Yields:
        The request id in effect
    """
    request_id = request_id or uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(symbol=symbol, request_id=request_id):
        yield request_id
