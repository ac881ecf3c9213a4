"""
Error Handling Decorators

Host hooks must not raise into the host, and optional subsystems (PCI
detection) must not take the plugin down with them. These decorators
turn such failures into a logged default value.

Records are logged under the decorated function's module, so a failure
in node_features.feature_cache is reported by that logger.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Type, Callable, Any, Optional

from .exceptions import NodeFeaturesError


def _logger_for(func: Callable) -> logging.Logger:
    return logging.getLogger(getattr(func, "__module__", None) or __name__)


def handle_errors(
    *exception_types: Type[Exception],
    default: Any = None,
    log_level: int = logging.ERROR,
    reraise: bool = False,
    message: Optional[str] = None,
):
    """
    Decorator to handle exceptions consistently.

    Args:
        exception_types: Exception types to catch (default: Exception)
        default: Value to return on error
        log_level: Logging level for errors
        reraise: Whether to re-raise after logging
        message: Custom error message prefix

    A traceback is logged only for unexpected errors at ERROR or above;
    NodeFeaturesError messages already say what went wrong.

    Example:
        @handle_errors(PciAccessError, default=None, log_level=logging.WARNING)
        def lookup_gpus(matcher):
            ...
    """
    if not exception_types:
        exception_types = (Exception,)

    def decorator(func: Callable) -> Callable:
        log = _logger_for(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except exception_types as e:
                prefix = message or f"{func.__qualname__} failed"
                log.log(
                    log_level,
                    f"{prefix}: {e}",
                    exc_info=log_level >= logging.ERROR and not isinstance(e, NodeFeaturesError),
                )
                if reraise:
                    raise
                return default
        return wrapper
    return decorator


def timed(func: Callable) -> Callable:
    """
    Decorator to log function execution time at DEBUG.
    """
    log = _logger_for(func)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            log.debug(f"{func.__qualname__} completed in {elapsed * 1000:.1f}ms")
    return wrapper
