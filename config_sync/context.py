"""Utilities for tracing the steps of a sync run."""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


_steps: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "sync_steps", default=()
)


def current_step() -> str:
    """Return the label of the step currently executing, if any."""
    return " > ".join(_steps.get())


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    """Record a nested sync step, logging entry and elapsed time at debug."""
    token = _steps.set(_steps.get() + (name,))
    label = current_step()
    start = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    finally:
        _steps.reset(token)
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, perf_counter() - start)
