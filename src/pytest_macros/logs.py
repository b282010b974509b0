"""Structured logging helpers.

Loggers are `structlog` bound loggers wrapped around standard library
loggers of the `pytest_macros` hierarchy. Nothing is configured
globally: records flow through the host `logging` setup, so pytest log
capture (and `caplog`) sees them like any other library log.
"""

import logging

import structlog

ROOT_LOGGER = 'pytest_macros'

_PROCESSORS = (
    structlog.stdlib.filter_by_level,
    structlog.processors.KeyValueRenderer(
        key_order=['event'],
        sort_keys=True,
    ),
)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (usually `__name__`).

    Returns:
        Bound logger writing to the standard library logger of that name.
    """
    return structlog.wrap_logger(
        logging.getLogger(name or ROOT_LOGGER),
        processors=list(_PROCESSORS),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def setup_logging(level: str = 'WARNING') -> None:
    """Set the level of the `pytest_macros` logger hierarchy.

    Args:
        level: Logging level name.
    """
    logging.getLogger(ROOT_LOGGER).setLevel(getattr(logging, level.upper()))
