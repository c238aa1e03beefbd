"""Structured logging configuration for cchooks.

Git runs hooks with stdout attached to the user's terminal, so the default
renderer is rich console output on stderr. JSON output is available for CI
systems that collect hook logs.
"""

import logging
import sys
from pathlib import Path

import structlog
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


CUSTOM_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "critical": "bold white on red",
        "debug": "dim white",
    }
)

# Third-party loggers that are too chatty at INFO for a git hook
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to the given module name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def setup_logging(
    json_logs: bool = False,
    log_level_name: str = "INFO",
    log_file: str | Path | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_logs: Render JSON lines instead of rich console output
        log_level_name: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path that additionally receives JSON log lines
    """
    level = getattr(logging, log_level_name.upper(), logging.INFO)

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    renderer: structlog.typing.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
        handler = RichHandler(
            console=Console(theme=CUSTOM_THEME, stderr=True),
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    handlers: list[logging.Handler] = [handler]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    structlog.processors.JSONRenderer(),
                ],
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
