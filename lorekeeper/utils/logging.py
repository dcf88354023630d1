"""structlog configuration shared by the API server and the CLI.

One processor chain feeds two renderers: a console renderer while
developing and JSON lines in production.  Standard-library loggers
(uvicorn, chromadb, openai, yt-dlp) are routed through the same chain so a
single stream carries every line.
"""

import logging
import sys

import structlog

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("chromadb", "httpx", "httpcore", "openai", "yt_dlp", "multipart")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Install the structlog pipeline and re-route stdlib logging through it.

    Args:
        log_level: Minimum level name, e.g. ``"DEBUG"`` or ``"WARNING"``.
        json_output: Emit JSON lines instead of the coloured console format.
            ``main`` turns this on when ``APP_ENV=production``.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    processors = _shared_processors()
    # structlog events are handed to stdlib loggers, so the stream is owned
    # by the root handler alone and can be replaced after configuration.
    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_request_context(**values: object) -> None:
    """Attach key/values to every log line emitted by the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str) -> structlog.BoundLogger:
    """Named logger; falls back to default configuration if none was installed."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
