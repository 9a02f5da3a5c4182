"""Debug mode switch.

In debug mode the simplex driver snapshots the tableau after every pivot and
runs :func:`~lpengine.diagnostics.core.assert_valid_tableau` on it, so a basis
column that drifted away from a unit vector stops the solve at the pivot that
broke it. The initial state comes from the ``LPENGINE_DEBUG`` environment
variable.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

__all__ = ["DEBUG_ENV_VAR", "is_debug_enabled", "set_debug_enabled", "debug_context", "reset_debug_from_env"]

DEBUG_ENV_VAR = "LPENGINE_DEBUG"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    source = os.environ if environ is None else environ
    return source.get(name, "").strip().lower() in _TRUTHY


_state = {"enabled": _env_flag(DEBUG_ENV_VAR)}


def is_debug_enabled() -> bool:
    """Whether per-pivot tableau validation is on."""
    return _state["enabled"]


def set_debug_enabled(enabled: bool) -> None:
    """
    Turn debug mode on or off for the whole process.

    Parameters
    ----------
    enabled:
        New state.
    """
    _state["enabled"] = bool(enabled)


def reset_debug_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Re-read ``LPENGINE_DEBUG`` and apply it.

    Parameters
    ----------
    environ:
        Mapping to read instead of ``os.environ``.

    Returns
    -------
    bool
        The resulting state.
    """
    _state["enabled"] = _env_flag(DEBUG_ENV_VAR, environ)
    return _state["enabled"]


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """
    Set debug mode for the duration of a ``with`` block.

    The previous state is restored on exit, also when the block raises.

    Example
    -------
    >>> with debug_context():
    ...     result = PrimalSimplexSolver().solve(model)
    """
    previous = _state["enabled"]
    _state["enabled"] = bool(enabled)
    try:
        yield
    finally:
        _state["enabled"] = previous
