"""structlog setup shared by the HTTP service and scripts."""

import logging

import structlog


def configure_logging(level: int | str = logging.INFO, json: bool = False) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level, as a logging constant or name ("DEBUG", "info", ...)
        json: Render events as JSON lines instead of the console renderer
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping()[level.upper()]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
