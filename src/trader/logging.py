"""structlog setup for the trader: one formatter for structlog and stdlib records, session context via contextvars."""

import logging

import structlog


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one ProcessorFormatter.

    Context is propagated with structlog.contextvars, so values bound by a
    trading session (symbol, interval) follow every task it spawns.

    Args:
        log_level: Root logger level name; unknown names fall back to INFO.
        log_format: "json" for machine-readable output, anything else
            renders for a terminal.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # websockets logs every frame at DEBUG; keep it out of session output
    logging.getLogger("websockets").setLevel(logging.WARNING)


def bind_session(symbol: str, interval: str) -> None:
    """Attach the traded pair to every log line emitted from this context."""
    structlog.contextvars.bind_contextvars(symbol=symbol, interval=interval)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
