"""Logging utilities for lpengine.

Every solver obtains its logger here so that a single call to
:func:`set_log_level` or :func:`configure_logging` controls the verbosity of
pivot traces, node processing and cut generation across the package.
Loggers created after a :func:`configure_logging` call inherit its level,
format and stream, and :func:`solver_trace` captures the trace of the solves
run inside a ``with`` block.
"""

from __future__ import annotations

import io
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

# Settings applied to every package logger, including ones created later.
# A None stream means sys.stderr at handler creation time.
_settings: dict = {"level": logging.WARNING, "format": _DEFAULT_FORMAT, "stream": None}

# Loggers created through get_logger, keyed by full name
_loggers: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def _make_handler() -> logging.Handler:
    handler = logging.StreamHandler(_settings["stream"] or sys.stderr)
    handler.setLevel(_settings["level"])
    handler.setFormatter(logging.Formatter(_settings["format"]))
    return handler


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create a package logger.

    Names are placed under the ``lpengine`` namespace, so both
    ``get_logger(__name__)`` from inside the package and
    ``get_logger("scripts")`` from user code end up with a configured logger.

    Args:
        name: Logger name (typically ``__name__``). If None, returns the
            package root logger.

    Returns:
        Configured logger instance.

    Example:
        >>> from lpengine.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("pivot on (1, 0)")
    """
    if name is None:
        name = "lpengine"

    logger_name = name if name == "lpengine" or name.startswith("lpengine.") else f"lpengine.{name}"

    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)

    if not logger.handlers:
        logger.setLevel(_settings["level"])
        logger.addHandler(_make_handler())
        logger.propagate = False

    _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the logging level for all lpengine loggers.

    Args:
        level: Logging level (``logging.DEBUG``, ``logging.INFO``, ...) or its
            name as a string.

    Example:
        >>> import logging
        >>> from lpengine.logging import set_log_level
        >>> set_log_level(logging.DEBUG)
    """
    level = _coerce_level(level)
    _settings["level"] = level
    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure handlers for all lpengine loggers.

    Existing handlers are replaced by a single stream handler, and loggers
    created afterwards get the same handler setup. Typically called once at
    application startup.

    Args:
        level: Logging level (default: WARNING).
        format_string: Custom format string. If None, uses the default
            ``[LEVEL] name: message`` layout.
        stream: Output stream (default: ``sys.stderr``).
    """
    _settings.update(level=_coerce_level(level), format=format_string or _DEFAULT_FORMAT, stream=stream)
    for logger in _loggers.values():
        logger.setLevel(_settings["level"])
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.addHandler(_make_handler())


@contextmanager
def solver_trace(level: int | str = logging.DEBUG, stream: Optional[TextIO] = None) -> Iterator[TextIO]:
    """Route package logging at ``level`` to ``stream`` for one block.

    Args:
        level: Trace verbosity. DEBUG shows every pivot, node and cut.
        stream: Destination. A fresh ``io.StringIO`` when None.

    Yields:
        The stream receiving the trace. The previous logging settings are
        restored on exit, also when the block raises.

    Example:
        >>> from lpengine.logging import solver_trace
        >>> with solver_trace() as trace:
        ...     result = PrimalSimplexSolver().solve(model)
        >>> "enters" in trace.getvalue()
        True
    """
    previous = dict(_settings)
    target = stream if stream is not None else io.StringIO()
    configure_logging(level, previous["format"], target)
    try:
        yield target
    finally:
        configure_logging(previous["level"], previous["format"], previous["stream"])
